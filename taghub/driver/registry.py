# taghub/driver/registry.py
from __future__ import annotations

from typing import Any, Callable, Dict

from taghub.core.errors import DriverError
from taghub.interfaces.driver import WirelessDriver
from .simulated import SimulatedDriver

DriverFactory = Callable[..., WirelessDriver]


class DriverRegistry:
    """
    Maps driver keys -> wireless driver factories.

    - keys are case-insensitive
    - NO configuration loading; params come from FleetConfig.driver_params
    """

    def __init__(self, drivers: Dict[str, DriverFactory]):
        self._drivers: Dict[str, DriverFactory] = {k.lower(): v for k, v in drivers.items()}

    @classmethod
    def default(cls) -> "DriverRegistry":
        return cls(
            drivers={
                "simulated": SimulatedDriver,
            }
        )

    def keys(self) -> list[str]:
        return sorted(self._drivers)

    def has(self, driver: str) -> bool:
        return driver.lower() in self._drivers

    def register(self, driver: str, factory: DriverFactory) -> None:
        self._drivers[driver.lower()] = factory

    def get_factory(self, driver: str) -> DriverFactory:
        key = driver.lower()
        if key not in self._drivers:
            raise DriverError(
                f"Wireless driver '{driver}' not registered.",
                hint=f"Known drivers: {', '.join(self.keys()) or '-'}",
            )
        return self._drivers[key]

    def create(self, driver: str, **params: Any) -> WirelessDriver:
        """
        Instantiate a wireless driver by key.
        """
        factory = self.get_factory(driver)
        try:
            return factory(**params)
        except (TypeError, ValueError) as e:
            raise DriverError(
                f"Failed to construct wireless driver '{driver}'.",
                hint=str(e),
                details={"driver": driver, "params": dict(params)},
            ) from None
