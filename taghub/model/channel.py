# taghub/model/channel.py
from __future__ import annotations

import numbers
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Optional, Sequence, Tuple


Converter = Callable[[float], float]
VariantPredicate = Callable[[Optional[str]], bool]


def to_fahrenheit(celsius: float) -> float:
    return (celsius * 1.8) + 32


def passthrough(value: float) -> float:
    return value


def any_variant(variant: Optional[str]) -> bool:
    return True


def only_variants(*variants: str) -> VariantPredicate:
    """
    Build a predicate accepting only the given hardware variants
    (case-insensitive). Unknown variants (None) are rejected.
    """
    allowed = frozenset(v.lower() for v in variants)

    def _supports(variant: Optional[str]) -> bool:
        return variant is not None and variant.lower() in allowed

    return _supports


@dataclass(frozen=True)
class ChannelOps:
    """Names of the device-handle methods driving one channel."""
    enable: str
    notify: str
    disable: str

    @classmethod
    def for_capability(cls, capability: str) -> "ChannelOps":
        return cls(
            enable=f"enable_{capability}",
            notify=f"notify_{capability}",
            disable=f"disable_{capability}",
        )


@dataclass(frozen=True)
class ChannelDefinition:
    """
    Static metadata + pure logic for one sensor channel.

    - `event` is the driver change-event name carrying the channel values
    - `fields` names the snapshot field for each emitted value (same order)
    - `convert` is applied to every emitted value before it is stored
    - `supports` gates hardware-variant specific channels
    """
    key: str
    label: str
    event: str
    fields: Tuple[str, ...]
    ops: ChannelOps
    unit: str = ""
    enabled: bool = False
    convert: Converter = passthrough
    supports: VariantPredicate = field(default=any_variant, compare=False)

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("Channel key must not be empty")
        if not self.event:
            raise ValueError(f"Channel '{self.key}' must define 'event'")
        if not self.fields:
            raise ValueError(f"Channel '{self.key}' must define at least one field")
        if len(set(self.fields)) != len(self.fields):
            raise ValueError(f"Channel '{self.key}' has duplicate fields {list(self.fields)}")

    def supported_by(self, variant: Optional[str]) -> bool:
        return bool(self.supports(variant))

    def with_enabled(self, enabled: bool) -> "ChannelDefinition":
        return replace(self, enabled=bool(enabled))

    def convert_values(self, values: Sequence[float]) -> Dict[str, float]:
        """
        Map raw event values onto snapshot fields, converting each one.

        Extra values beyond the declared fields are ignored; missing ones
        leave their field untouched. Values keep their numeric type unless
        the conversion changes it.
        """
        out: Dict[str, float] = {}
        for name, raw in zip(self.fields, values):
            if isinstance(raw, bool) or not isinstance(raw, numbers.Real):
                raise TypeError(f"Channel '{self.key}' value for '{name}' is not a number: {raw!r}")
            out[name] = self.convert(raw)
        return out

    def __repr__(self) -> str:
        return f"ChannelDefinition(key='{self.key}', enabled={self.enabled}, fields={list(self.fields)})"
