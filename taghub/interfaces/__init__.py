from .driver import ChangeHandler, DeviceHandle, WirelessDriver
from .messaging import MessagingClient, MessagingFactory

__all__ = ["ChangeHandler",
           "DeviceHandle",
           "MessagingClient",
           "MessagingFactory",
           "WirelessDriver"]
