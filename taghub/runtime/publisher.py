# taghub/runtime/publisher.py
from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, Optional

from taghub.interfaces.messaging import MessagingClient
from taghub.runtime.scheduler import Scheduler, TimerHandle
from taghub.runtime.snapshot import StateSnapshot
from taghub.runtime.state import PublisherStats

DEFAULT_TX_INTERVAL_S = 5.0
DEVICE_ID_FIELD = "DeviceId"


def build_payload(values: Dict[str, Any], display_name: str) -> Dict[str, Any]:
    """Flat field -> value object stamped with the device display name."""
    payload = dict(values)
    payload[DEVICE_ID_FIELD] = display_name
    return payload


class TelemetryPublisher:
    """
    Periodically drains one device's snapshot to the cloud hub.

    Each tick reads the snapshot without clearing it and sends only when
    something has been reported and the session has enabled sending.
    Failed sends are logged and forgotten; the next tick is independent.
    """

    def __init__(
        self,
        *,
        display_name: str,
        snapshot: StateSnapshot,
        client: MessagingClient,
        scheduler: Scheduler,
        interval_s: float = DEFAULT_TX_INTERVAL_S,
        logger: Optional[logging.Logger] = None,
    ):
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got {interval_s}")

        self._name = display_name
        self._snapshot = snapshot
        self._client = client
        self._scheduler = scheduler
        self._interval_s = float(interval_s)
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._timer: Optional[TimerHandle] = None
        self._ticks = 0
        self._sent = 0
        self._skipped = 0
        self._failed = 0
        self._last_error: Optional[str] = None

    @property
    def is_started(self) -> bool:
        with self._lock:
            return self._timer is not None

    def start(self) -> None:
        with self._lock:
            if self._timer is not None:
                return
            self._timer = self._scheduler.call_every(
                self._interval_s, self.tick, name=f"publish-{self._name}"
            )
        self._log.info("PUBLISHER_START device=%s interval_s=%.3f", self._name, self._interval_s)

    def stop(self) -> None:
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            self._log.info("PUBLISHER_STOP device=%s", self._name)

    def tick(self) -> bool:
        """Run one publish cycle. Returns True when a message was delivered."""
        values = self._snapshot.read()
        send_enabled = self._snapshot.send_enabled

        with self._lock:
            self._ticks += 1

        if not values or not send_enabled:
            with self._lock:
                self._skipped += 1
            self._log.debug(
                "PUBLISH_SKIPPED device=%s fields=%d send_enabled=%s",
                self._name,
                len(values),
                send_enabled,
            )
            return False

        message = json.dumps(build_payload(values, self._name))

        self._log.info("PUBLISH device=%s fields=%d", self._name, len(values))
        try:
            self._client.send_event(message)
        except Exception as e:
            with self._lock:
                self._failed += 1
                self._last_error = str(e)
            self._log.error("PUBLISH_FAILED device=%s err=%s", self._name, e)
            return False

        with self._lock:
            self._sent += 1
        return True

    def stats(self) -> PublisherStats:
        with self._lock:
            return PublisherStats(
                ticks=self._ticks,
                sent=self._sent,
                skipped=self._skipped,
                failed=self._failed,
                last_error=self._last_error,
            )
