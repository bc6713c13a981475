from __future__ import annotations

import threading

import pytest

from taghub.driver.simulated import SimulatedDriver, SimulatedTag
from taghub.model.registry import ChannelRegistry
from taghub.runtime.device_session import DeviceSession
from taghub.runtime.snapshot import StateSnapshot
from taghub.runtime.state import SessionState


def test_discover_uses_configured_variant():
    drv = SimulatedDriver(variants={"B0:B4:48:C9:8A:01": "cc2540"}, seed=1)
    tag = drv.discover_by_id("b0b448c98a01")
    assert tag.type == "cc2540"
    assert drv.discover_by_id("other").type == "cc2650"
    assert drv.tags["b0b448c98a01"] is tag


def test_unknown_variant_rejected():
    with pytest.raises(ValueError):
        SimulatedTag("x", variant="cc9999")


def test_channel_ops_require_connection():
    tag = SimulatedTag("x", reading_interval_s=60)
    with pytest.raises(RuntimeError):
        tag.enable_humidity()


def test_unsupported_channel_can_only_be_disabled():
    tag = SimulatedTag("x", variant="cc2540", reading_interval_s=60)
    tag.connect_and_set_up()
    try:
        tag.disable_luxometer()
        with pytest.raises(RuntimeError):
            tag.enable_luxometer()
    finally:
        tag.disconnect()


def test_unknown_operation_is_attribute_error():
    tag = SimulatedTag("x")
    with pytest.raises(AttributeError):
        tag.enable_thermometer()
    assert getattr(tag, "reboot", None) is None


def test_emit_reading_reaches_handlers():
    tag = SimulatedTag("x", seed=3)
    got = []
    tag.on("luxometerChange", lambda *v: got.append(v))
    tag.emit_reading("luxometer")
    assert len(got) == 1
    assert 0 <= got[0][0] <= 1000


def test_disconnect_emits_event_once():
    tag = SimulatedTag("x", reading_interval_s=60)
    events = []
    tag.on("disconnect", lambda *_: events.append("disconnect"))
    tag.connect_and_set_up()

    tag.disconnect()
    tag.disconnect()
    assert events == ["disconnect"]


def test_session_over_simulated_tag(scheduler, descriptor):
    drv = SimulatedDriver(reading_interval_s=0.01, seed=7)
    snapshot = StateSnapshot(descriptor.device_id)
    session = DeviceSession(
        descriptor=descriptor,
        driver=drv,
        registry=ChannelRegistry.default(),
        snapshot=snapshot,
        scheduler=scheduler,
    )

    got_reading = threading.Event()
    session.run()
    tag = drv.tags[descriptor.device_id]
    tag.on("luxometerChange", lambda *_: got_reading.set())

    try:
        assert session.state is SessionState.ACTIVE
        assert got_reading.wait(2.0)
        assert set(snapshot.fields()) <= {"Temperature", "Humidity", "Barometric Pressure", "Luxometer"}
        assert "Luxometer" in snapshot.fields()
    finally:
        tag.disconnect()

    assert snapshot.send_enabled is False
    assert session.state is SessionState.DISCOVERING
