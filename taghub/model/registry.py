# taghub/model/registry.py
from __future__ import annotations

from typing import Dict, Iterator, List, Mapping, Optional, Sequence

from taghub.core.errors import ConfigError
from .channel import (
    ChannelDefinition,
    ChannelOps,
    only_variants,
    passthrough,
    to_fahrenheit,
)


#: Hardware variant reporting a light sensor.
VARIANT_CC2650 = "cc2650"


def default_channels() -> List[ChannelDefinition]:
    """
    Built-in SensorTag channel table, in configuration order.

    The humidity channel converts both of its values to Fahrenheit,
    including the relative humidity percentage. Downstream dashboards
    depend on the values as they are published today.
    """
    return [
        ChannelDefinition(
            key="ir_temperature",
            label="IR temperature",
            event="irTemperatureChange",
            fields=("Infrared Temperature", "Ambient Temperature"),
            ops=ChannelOps.for_capability("ir_temperature"),
            unit="F",
            convert=to_fahrenheit,
        ),
        ChannelDefinition(
            key="accelerometer",
            label="accelerometer",
            event="accelerometerChange",
            fields=("Accelerometer X", "Accelerometer Y", "Accelerometer Z"),
            ops=ChannelOps.for_capability("accelerometer"),
            unit="G",
            convert=passthrough,
        ),
        ChannelDefinition(
            key="humidity",
            label="humidity",
            event="humidityChange",
            fields=("Temperature", "Humidity"),
            ops=ChannelOps.for_capability("humidity"),
            unit="F",
            enabled=True,
            convert=to_fahrenheit,
        ),
        ChannelDefinition(
            key="magnetometer",
            label="magnetometer",
            event="magnetometerChange",
            fields=("Magnetometer X", "Magnetometer Y", "Magnetometer Z"),
            ops=ChannelOps.for_capability("magnetometer"),
            unit="uT",
            convert=passthrough,
        ),
        ChannelDefinition(
            key="barometric_pressure",
            label="barometric pressure",
            event="barometricPressureChange",
            fields=("Barometric Pressure",),
            ops=ChannelOps.for_capability("barometric_pressure"),
            unit="mBar",
            enabled=True,
            convert=passthrough,
        ),
        ChannelDefinition(
            key="gyroscope",
            label="gyroscope",
            event="gyroscopeChange",
            fields=("Rotation X", "Rotation Y", "Rotation Z"),
            ops=ChannelOps.for_capability("gyroscope"),
            unit="deg/s",
            convert=passthrough,
        ),
        ChannelDefinition(
            key="luxometer",
            label="luxometer",
            event="luxometerChange",
            fields=("Luxometer",),
            ops=ChannelOps.for_capability("luxometer"),
            unit="lux",
            enabled=True,
            convert=passthrough,
            supports=only_variants(VARIANT_CC2650),
        ),
    ]


class ChannelRegistry:
    """
    Read-only, ordered view of the channel definitions.

    A registry is handed to each device session and consulted once while
    the session configures its device; changing flags means building a new
    registry, which only newly configured sessions will see.
    """

    def __init__(self, channels: Sequence[ChannelDefinition]):
        self._order: List[str] = []
        self._channels: Dict[str, ChannelDefinition] = {}
        for ch in channels:
            if ch.key in self._channels:
                raise ValueError(f"Duplicate channel key '{ch.key}'")
            self._order.append(ch.key)
            self._channels[ch.key] = ch

    @classmethod
    def default(cls) -> "ChannelRegistry":
        return cls(default_channels())

    def __iter__(self) -> Iterator[ChannelDefinition]:
        return (self._channels[k] for k in self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, key: object) -> bool:
        return key in self._channels

    def keys(self) -> List[str]:
        return list(self._order)

    def get(self, key: str) -> ChannelDefinition:
        ch = self._channels.get(key)
        if ch is None:
            raise KeyError(f"Unknown channel '{key}'")
        return ch

    def is_enabled(self, key: str) -> bool:
        return self.get(key).enabled

    def supports(self, key: str, variant: Optional[str]) -> bool:
        return self.get(key).supported_by(variant)

    def should_subscribe(self, key: str, variant: Optional[str]) -> bool:
        ch = self.get(key)
        return ch.enabled and ch.supported_by(variant)

    def enabled_fields(self, variant: Optional[str]) -> List[str]:
        """Snapshot fields a device of `variant` can ever report."""
        out: List[str] = []
        for ch in self:
            if ch.enabled and ch.supported_by(variant):
                out.extend(ch.fields)
        return out

    def with_flags(self, flags: Mapping[str, bool]) -> "ChannelRegistry":
        """Return a new registry with enable flags overridden by `flags`."""
        unknown = sorted(k for k in flags if k not in self._channels)
        if unknown:
            raise ConfigError(
                f"Unknown channel(s) {unknown}.",
                hint=f"Known channels: {', '.join(self._order)}",
            )
        return ChannelRegistry(
            [
                ch.with_enabled(flags[ch.key]) if ch.key in flags else ch
                for ch in self
            ]
        )

    def flags(self) -> Dict[str, bool]:
        return {ch.key: ch.enabled for ch in self}
