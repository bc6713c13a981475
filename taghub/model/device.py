# taghub/model/device.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DeviceDescriptor:
    """
    Identity of one configured tag.

    device_id: hardware id reported by the driver (MAC address without colons)
    name:      display name, also the device id registered on the hub
    key:       shared access key for the hub device
    """
    device_id: str
    name: str
    key: str

    def __post_init__(self) -> None:
        if not self.device_id:
            raise ValueError("Device descriptor is missing 'id'")
        if not self.name:
            raise ValueError(f"Device '{self.device_id}' is missing 'name'")
        if not self.key:
            raise ValueError(f"Device '{self.device_id}' is missing 'key'")

    def __repr__(self) -> str:
        # never leak the key into logs
        return f"DeviceDescriptor(device_id='{self.device_id}', name='{self.name}')"


def normalize_device_id(raw: str) -> str:
    return str(raw).replace(":", "").replace("-", "").strip().lower()
