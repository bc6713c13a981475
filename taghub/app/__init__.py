from .config import FleetConfig
from .coordinator import DeviceRuntime, FleetCoordinator

__all__ = ["DeviceRuntime",
           "FleetConfig",
           "FleetCoordinator"]
