from __future__ import annotations

import json

import pytest

from taghub.core.errors import DeliveryError
from taghub.runtime.publisher import TelemetryPublisher, build_payload
from taghub.runtime.snapshot import StateSnapshot


def _publisher(messaging, scheduler, *, interval_s=5.0):
    snap = StateSnapshot("b0b448c98a01")
    pub = TelemetryPublisher(
        display_name="lab-tag",
        snapshot=snap,
        client=messaging,
        scheduler=scheduler,
        interval_s=interval_s,
    )
    return pub, snap


def test_build_payload_adds_device_id_without_touching_input():
    values = {"Luxometer": 300}
    payload = build_payload(values, "lab-tag")
    assert payload == {"Luxometer": 300, "DeviceId": "lab-tag"}
    assert values == {"Luxometer": 300}


def test_empty_snapshot_sends_nothing(messaging, scheduler):
    pub, snap = _publisher(messaging, scheduler)
    snap.send_enabled = True

    assert pub.tick() is False
    assert messaging.sent == []
    assert pub.stats().skipped == 1


def test_disabled_gate_sends_nothing(messaging, scheduler):
    pub, snap = _publisher(messaging, scheduler)
    snap.set("Luxometer", 300)

    assert pub.tick() is False
    assert messaging.sent == []


def test_tick_sends_snapshot_with_device_id(messaging, scheduler):
    pub, snap = _publisher(messaging, scheduler)
    snap.update({"Temperature": 68, "Humidity": 122, "Luxometer": 300})
    snap.send_enabled = True

    assert pub.tick() is True
    assert len(messaging.sent) == 1
    assert json.loads(messaging.sent[0]) == {
        "Temperature": 68,
        "Humidity": 122,
        "Luxometer": 300,
        "DeviceId": "lab-tag",
    }
    # snapshot is not drained by a send
    assert snap.read() == {"Temperature": 68, "Humidity": 122, "Luxometer": 300}


def test_latest_value_wins_between_ticks(messaging, scheduler):
    pub, snap = _publisher(messaging, scheduler)
    snap.send_enabled = True
    snap.set("Luxometer", 1)
    snap.set("Luxometer", 2)
    snap.set("Luxometer", 3)

    pub.tick()
    assert json.loads(messaging.sent[-1])["Luxometer"] == 3


def test_failed_send_is_counted_and_not_retried(messaging, scheduler):
    pub, snap = _publisher(messaging, scheduler)
    snap.set("Luxometer", 300)
    snap.send_enabled = True

    messaging.fail_with = DeliveryError("hub unreachable")
    assert pub.tick() is False
    assert messaging.sent == []

    st = pub.stats()
    assert st.failed == 1
    assert st.last_error == "hub unreachable"

    messaging.fail_with = None
    assert pub.tick() is True
    assert len(messaging.sent) == 1

    st = pub.stats()
    assert (st.ticks, st.sent, st.failed) == (2, 1, 1)


def test_unexpected_client_exception_does_not_escape(messaging, scheduler):
    pub, snap = _publisher(messaging, scheduler)
    snap.set("Luxometer", 300)
    snap.send_enabled = True
    messaging.fail_with = RuntimeError("socket closed")

    assert pub.tick() is False
    assert pub.stats().failed == 1


def test_start_registers_periodic_timer(messaging, scheduler):
    pub, snap = _publisher(messaging, scheduler, interval_s=2.0)
    snap.set("Luxometer", 300)
    snap.send_enabled = True

    pub.start()
    pub.start()
    assert pub.is_started is True
    assert len(scheduler.pending("publish-")) == 1

    scheduler.advance(1.9)
    assert messaging.sent == []
    scheduler.advance(0.1)
    assert len(messaging.sent) == 1
    scheduler.advance(4.0)
    assert len(messaging.sent) == 3

    pub.stop()
    assert pub.is_started is False
    scheduler.advance(10.0)
    assert len(messaging.sent) == 3


def test_gate_toggles_between_ticks(messaging, scheduler):
    pub, snap = _publisher(messaging, scheduler)
    snap.set("Luxometer", 300)
    pub.start()

    scheduler.advance(5.0)
    snap.send_enabled = True
    scheduler.advance(5.0)
    snap.send_enabled = False
    scheduler.advance(5.0)

    assert len(messaging.sent) == 1
    st = pub.stats()
    assert (st.ticks, st.sent, st.skipped) == (3, 1, 2)


def test_non_positive_interval_rejected(messaging, scheduler):
    with pytest.raises(ValueError):
        _publisher(messaging, scheduler, interval_s=0)
