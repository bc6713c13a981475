# taghub/model/loader.py
from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from taghub.app.config import (
    DEFAULT_DRIVER,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TX_INTERVAL_MS,
    FleetConfig,
)
from taghub.core.errors import ConfigError
from .device import DeviceDescriptor, normalize_device_id
from .registry import ChannelRegistry


def _sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


class FleetConfigLoader:
    """
    Loads the fleet configuration YAML into an immutable FleetConfig.

    Expected layout:

        hub_name: my-hub
        tx_interval_ms: 5000
        retry_delay_ms: 5000
        driver: simulated
        driver_params: {}
        channels:
          humidity: true
          luxometer: true
        devices:
          - id: b0b448c98a01
            name: lab-tag
            key: <shared access key>
          - id: b0b448c98a02
            name: porch-tag
            key_env: PORCH_TAG_KEY

    After calling load(), also exposes:
        self.file_hash : sha256 of the loaded file
    """

    def __init__(self, path: str | Path, *, environ: Optional[Mapping[str, str]] = None):
        self.path = Path(path)
        self.file_hash: Optional[str] = None
        self._environ = environ if environ is not None else os.environ

    # ---------------------------------------------------------------------
    # Public entry point
    # ---------------------------------------------------------------------
    def load(self) -> FleetConfig:
        """Load + validate; every failure surfaces as ConfigError."""
        try:
            data = self._load_yaml()
            config = self._parse(data)
        except ConfigError:
            raise
        except (FileNotFoundError, ValueError, TypeError, yaml.YAMLError) as e:
            raise ConfigError(
                "Failed to load fleet configuration.",
                hint=str(e),
                details={"path": str(self.path)},
            ) from None

        self.file_hash = _sha256_file(self.path)
        return config

    # ---------------------------------------------------------------------
    # YAML utility
    # ---------------------------------------------------------------------
    def _load_yaml(self) -> dict:
        if not self.path.exists():
            raise FileNotFoundError(f"Missing config file: {self.path}")

        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError("Fleet configuration root must be a mapping")
        return data

    # ---------------------------------------------------------------------
    # Parsing
    # ---------------------------------------------------------------------
    def _parse(self, data: Dict[str, Any]) -> FleetConfig:
        hub_name = data.get("hub_name")
        if not hub_name or not isinstance(hub_name, str):
            raise ValueError("Fleet configuration is missing 'hub_name'")

        tx_interval_ms = self._positive_int(data, "tx_interval_ms", DEFAULT_TX_INTERVAL_MS)
        retry_delay_ms = self._positive_int(data, "retry_delay_ms", DEFAULT_RETRY_DELAY_MS)

        driver = str(data.get("driver") or DEFAULT_DRIVER)
        driver_params = data.get("driver_params") or {}
        if not isinstance(driver_params, dict):
            raise ValueError("'driver_params' must be a mapping")

        channel_flags = self._parse_channels(data.get("channels"))
        devices = self._parse_devices(data.get("devices"))

        return FleetConfig(
            hub_name=hub_name.strip(),
            devices=devices,
            channel_flags=channel_flags,
            tx_interval_ms=tx_interval_ms,
            retry_delay_ms=retry_delay_ms,
            driver=driver,
            driver_params=dict(driver_params),
        )

    @staticmethod
    def _positive_int(data: Mapping[str, Any], name: str, default: int) -> int:
        raw = data.get(name, default)
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValueError(f"'{name}' must be an integer (milliseconds)")
        if raw <= 0:
            raise ValueError(f"'{name}' must be > 0, got {raw}")
        return raw

    @staticmethod
    def _parse_channels(raw: Any) -> Dict[str, bool]:
        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError("'channels' must be a mapping of channel -> bool")

        known = ChannelRegistry.default()
        flags: Dict[str, bool] = {}
        for key, value in raw.items():
            key = str(key)
            if key not in known:
                raise ValueError(
                    f"Unknown channel '{key}' (known: {', '.join(known.keys())})"
                )
            if not isinstance(value, bool):
                raise ValueError(f"Channel '{key}' flag must be true/false")
            flags[key] = value
        return flags

    def _parse_devices(self, raw: Any) -> Tuple[DeviceDescriptor, ...]:
        if not isinstance(raw, list) or not raw:
            raise ValueError("Fleet configuration needs a non-empty 'devices' list")

        devices: List[DeviceDescriptor] = []
        seen: set[str] = set()
        for idx, entry in enumerate(raw):
            if not isinstance(entry, dict):
                raise ValueError(f"Device #{idx} entry must be a mapping")

            device_id = str(entry.get("id") or "").strip()
            name = str(entry.get("name") or "").strip()
            key = self._resolve_key(idx, entry)

            descriptor = DeviceDescriptor(device_id=device_id, name=name, key=key)
            normalized = normalize_device_id(descriptor.device_id)
            if normalized in seen:
                raise ValueError(f"Duplicate device id '{descriptor.device_id}'")
            seen.add(normalized)
            devices.append(descriptor)

        return tuple(devices)

    def _resolve_key(self, idx: int, entry: Mapping[str, Any]) -> str:
        key = entry.get("key")
        key_env = entry.get("key_env")
        if key and key_env:
            raise ValueError(f"Device #{idx} must define only one of 'key' / 'key_env'")
        if key_env:
            value = self._environ.get(str(key_env))
            if not value:
                raise ValueError(f"Device #{idx} key_env '{key_env}' is not set")
            return value
        return str(key or "").strip()
