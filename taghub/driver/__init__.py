from .registry import DriverRegistry
from .simulated import SimulatedDriver, SimulatedTag

__all__ = ["DriverRegistry",
           "SimulatedDriver",
           "SimulatedTag"]
