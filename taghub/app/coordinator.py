# taghub/app/coordinator.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from taghub.app.config import FleetConfig
from taghub.core.errors import TagHubError
from taghub.interfaces.driver import WirelessDriver
from taghub.interfaces.messaging import MessagingClient, MessagingFactory
from taghub.messaging.credentials import build_connection_string
from taghub.model.device import DeviceDescriptor
from taghub.model.registry import ChannelRegistry
from taghub.runtime.device_session import DeviceSession
from taghub.runtime.publisher import TelemetryPublisher
from taghub.runtime.scheduler import Scheduler, ThreadScheduler
from taghub.runtime.snapshot import StateSnapshot
from taghub.runtime.state import PublisherStats, SessionStatus


@dataclass(frozen=True)
class DeviceRuntime:
    descriptor: DeviceDescriptor
    snapshot: StateSnapshot
    session: DeviceSession
    publisher: TelemetryPublisher
    client: MessagingClient


class FleetCoordinator:
    """
    Starts one DeviceSession + TelemetryPublisher pair per configured device.

    Devices are independent: each session's first cycle runs on its own
    scheduler thread, and a fatal session error only marks that device as
    failed. Failed devices are not restarted.
    """

    def __init__(
        self,
        config: FleetConfig,
        *,
        driver: WirelessDriver,
        messaging_factory: MessagingFactory,
        scheduler: Optional[Scheduler] = None,
        registry: Optional[ChannelRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._driver = driver
        self._messaging_factory = messaging_factory
        self._log = logger or logging.getLogger(__name__)
        self._scheduler = scheduler or ThreadScheduler(logger=self._log)
        self._registry = registry or config.channel_registry()

        self._lock = threading.Lock()
        self._devices: Dict[str, DeviceRuntime] = {}
        self._failures: Dict[str, BaseException] = {}
        self._started = False

    @property
    def config(self) -> FleetConfig:
        return self._config

    @property
    def registry(self) -> ChannelRegistry:
        return self._registry

    def devices(self) -> List[DeviceRuntime]:
        with self._lock:
            return list(self._devices.values())

    def device(self, device_id: str) -> DeviceRuntime:
        with self._lock:
            rt = self._devices.get(device_id)
        if rt is None:
            raise KeyError(f"Unknown device '{device_id}'")
        return rt

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            self._started = True

        self._log.info(
            "FLEET_START hub=%s devices=%d channels=%s",
            self._config.hub_name,
            len(self._config.devices),
            [ch.key for ch in self._registry if ch.enabled],
        )

        for descriptor in self._config.devices:
            try:
                rt = self._build_device(descriptor)
            except TagHubError as e:
                self._record_failure(descriptor.device_id, e)
                continue

            with self._lock:
                self._devices[descriptor.device_id] = rt

            rt.publisher.start()
            self._scheduler.call_later(
                0.0,
                lambda s=rt.session: self._run_session(s),
                name=f"session-{descriptor.device_id}",
            )

    def stop(self) -> None:
        with self._lock:
            devices = list(self._devices.values())
            self._started = False

        for rt in devices:
            try:
                rt.publisher.stop()
            except Exception:
                self._log.exception("PUBLISHER_STOP_ERROR device=%s", rt.descriptor.device_id)
            try:
                rt.client.close()
            except Exception:
                self._log.exception("MESSAGING_CLOSE_ERROR device=%s", rt.descriptor.device_id)

        self._log.info("FLEET_STOP devices=%d", len(devices))

    def __enter__(self) -> "FleetCoordinator":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ---------------- status ----------------
    def status(self) -> List[SessionStatus]:
        return [rt.session.status() for rt in self.devices()]

    def publisher_stats(self) -> Dict[str, PublisherStats]:
        return {rt.descriptor.device_id: rt.publisher.stats() for rt in self.devices()}

    def failures(self) -> Dict[str, BaseException]:
        with self._lock:
            return dict(self._failures)

    # ---------------- internals ----------------
    def _build_device(self, descriptor: DeviceDescriptor) -> DeviceRuntime:
        snapshot = StateSnapshot(descriptor.device_id)
        session = DeviceSession(
            descriptor=descriptor,
            driver=self._driver,
            registry=self._registry,
            snapshot=snapshot,
            scheduler=self._scheduler,
            retry_delay_s=self._config.retry_delay_s,
            supervisor=self._on_session_failed,
            logger=self._log,
        )
        client = self._messaging_factory(
            build_connection_string(self._config.hub_name, descriptor.name, descriptor.key)
        )
        publisher = TelemetryPublisher(
            display_name=descriptor.name,
            snapshot=snapshot,
            client=client,
            scheduler=self._scheduler,
            interval_s=self._config.tx_interval_s,
            logger=self._log,
        )
        return DeviceRuntime(
            descriptor=descriptor,
            snapshot=snapshot,
            session=session,
            publisher=publisher,
            client=client,
        )

    def _run_session(self, session: DeviceSession) -> None:
        try:
            session.run()
        except Exception as e:
            session.fail(e)

    def _on_session_failed(self, session: DeviceSession, exc: BaseException) -> None:
        self._record_failure(session.descriptor.device_id, exc)

    def _record_failure(self, device_id: str, exc: BaseException) -> None:
        with self._lock:
            self._failures[device_id] = exc
        code = getattr(exc, "code", type(exc).__name__)
        hint = getattr(exc, "hint", None)
        self._log.error(
            "SESSION_FAILED device=%s code=%s msg=%s hint=%s",
            device_id,
            code,
            exc,
            hint or "-",
        )
