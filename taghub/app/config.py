# taghub/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Tuple

from taghub.model.device import DeviceDescriptor
from taghub.model.registry import ChannelRegistry


DEFAULT_TX_INTERVAL_MS = 5000
DEFAULT_RETRY_DELAY_MS = 5000
DEFAULT_DRIVER = "simulated"


@dataclass(frozen=True)
class FleetConfig:
    """
    Immutable fleet configuration.

    `channel_flags` and `driver_params` are read-only views over private
    copies; they take no part in hashing.
    """
    hub_name: str
    devices: Tuple[DeviceDescriptor, ...]
    channel_flags: Mapping[str, bool] = field(default_factory=dict, hash=False)
    tx_interval_ms: int = DEFAULT_TX_INTERVAL_MS
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    driver: str = DEFAULT_DRIVER
    driver_params: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "devices", tuple(self.devices))
        object.__setattr__(self, "channel_flags", MappingProxyType(dict(self.channel_flags)))
        object.__setattr__(self, "driver_params", MappingProxyType(dict(self.driver_params)))

    @property
    def tx_interval_s(self) -> float:
        return self.tx_interval_ms / 1000.0

    @property
    def retry_delay_s(self) -> float:
        return self.retry_delay_ms / 1000.0

    def channel_registry(self) -> ChannelRegistry:
        return ChannelRegistry.default().with_flags(self.channel_flags)
