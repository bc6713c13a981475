from .channel import ChannelDefinition, ChannelOps, to_fahrenheit
from .device import DeviceDescriptor
from .registry import ChannelRegistry

__all__ = ["ChannelDefinition",
           "ChannelOps",
           "ChannelRegistry",
           "DeviceDescriptor",
           "to_fahrenheit"]
