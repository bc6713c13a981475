# taghub/interfaces/driver.py
from __future__ import annotations

from typing import Callable, Optional, Protocol


ChangeHandler = Callable[..., None]


class DeviceHandle(Protocol):
    """
    One discovered tag, as exposed by the wireless driver.

    Contract:
      - every call returns once the device acknowledged it, or raises
      - channel operations are named `enable_<x>`, `notify_<x>`, `disable_<x>`
        (see ChannelOps); disabling an already disabled channel must not fail
      - on(event, handler) registers a handler for change events
        ("humidityChange", ...) and for "disconnect"
    """

    @property
    def id(self) -> str: ...

    @property
    def type(self) -> Optional[str]: ...

    def connect_and_set_up(self) -> None: ...

    def on(self, event: str, handler: ChangeHandler) -> None: ...


class WirelessDriver(Protocol):
    def discover_by_id(self, device_id: str) -> DeviceHandle:
        """Block until a device with `device_id` is in range (no timeout)."""
        ...
