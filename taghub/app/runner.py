# taghub/app/runner.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from taghub.app.config import FleetConfig
from taghub.app.coordinator import FleetCoordinator
from taghub.driver.registry import DriverRegistry
from taghub.interfaces.messaging import MessagingFactory
from taghub.messaging.console import ConsoleMessagingClient
from taghub.messaging.iothub import IoTHubMqttClient
from taghub.model.loader import FleetConfigLoader
from taghub.runtime.scheduler import Scheduler


@dataclass(frozen=True)
class AppRun:
    coordinator: FleetCoordinator
    config: FleetConfig
    config_hash: Optional[str]


def load_config(path: str | Path) -> tuple[FleetConfig, Optional[str]]:
    loader = FleetConfigLoader(path)
    config = loader.load()
    return config, loader.file_hash


def messaging_factory_for(*, dry_run: bool) -> MessagingFactory:
    if dry_run:
        return ConsoleMessagingClient
    return IoTHubMqttClient


def start_run(
    config_path: str | Path,
    *,
    dry_run: bool = False,
    drivers: Optional[DriverRegistry] = None,
    scheduler: Optional[Scheduler] = None,
) -> AppRun:
    """
    Load configuration, resolve the wireless driver and build (but do not
    start) the fleet coordinator.
    """
    log = logging.getLogger(__name__)

    config, config_hash = load_config(config_path)
    drivers = drivers or DriverRegistry.default()
    driver = drivers.create(config.driver, **dict(config.driver_params))

    log.info(
        "RUN_CONFIG path=%s sha256=%s driver=%s dry_run=%s",
        config_path,
        config_hash,
        config.driver,
        dry_run,
    )

    coordinator = FleetCoordinator(
        config,
        driver=driver,
        messaging_factory=messaging_factory_for(dry_run=dry_run),
        scheduler=scheduler,
        logger=log,
    )
    return AppRun(coordinator=coordinator, config=config, config_hash=config_hash)
