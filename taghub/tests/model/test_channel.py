from __future__ import annotations

import pytest

from taghub.model.channel import (
    ChannelDefinition,
    ChannelOps,
    any_variant,
    only_variants,
    passthrough,
    to_fahrenheit,
)


def _channel(**kw) -> ChannelDefinition:
    base = dict(
        key="humidity",
        label="humidity",
        event="humidityChange",
        fields=("Temperature", "Humidity"),
        ops=ChannelOps.for_capability("humidity"),
    )
    base.update(kw)
    return ChannelDefinition(**base)


def test_to_fahrenheit_is_exact():
    assert to_fahrenheit(0) == 32
    assert to_fahrenheit(100) == 212
    assert to_fahrenheit(-40) == -40
    assert to_fahrenheit(20) == 68
    assert to_fahrenheit(50) == 122


def test_ops_follow_capability_naming():
    ops = ChannelOps.for_capability("barometric_pressure")
    assert ops.enable == "enable_barometric_pressure"
    assert ops.notify == "notify_barometric_pressure"
    assert ops.disable == "disable_barometric_pressure"


def test_channel_requires_event_and_fields():
    with pytest.raises(ValueError):
        _channel(event="")

    with pytest.raises(ValueError):
        _channel(fields=())

    with pytest.raises(ValueError):
        _channel(fields=("X", "X"))


def test_convert_values_maps_fields_in_order():
    ch = _channel(convert=to_fahrenheit)
    assert ch.convert_values((20, 50)) == {"Temperature": 68, "Humidity": 122}


def test_convert_values_ignores_extra_and_tolerates_missing():
    ch = _channel(convert=passthrough)
    assert ch.convert_values((1, 2, 3)) == {"Temperature": 1, "Humidity": 2}
    assert ch.convert_values((5,)) == {"Temperature": 5}


def test_passthrough_keeps_numeric_type():
    ch = _channel(convert=passthrough)
    out = ch.convert_values((300, 2.5))
    assert type(out["Temperature"]) is int
    assert type(out["Humidity"]) is float


def test_convert_values_rejects_non_numeric():
    ch = _channel()
    with pytest.raises((TypeError, ValueError)):
        ch.convert_values(("warm",))
    with pytest.raises(TypeError):
        ch.convert_values(("300",))
    with pytest.raises(TypeError):
        ch.convert_values((True,))


def test_variant_predicates():
    cc2650_only = only_variants("CC2650")
    assert cc2650_only("cc2650") is True
    assert cc2650_only("cc2540") is False
    assert cc2650_only(None) is False
    assert any_variant(None) is True


def test_with_enabled_returns_new_definition():
    ch = _channel(enabled=False)
    on = ch.with_enabled(True)
    assert on.enabled is True
    assert ch.enabled is False
    assert on.fields == ch.fields
