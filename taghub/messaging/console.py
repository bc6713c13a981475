# taghub/messaging/console.py
from __future__ import annotations

import logging
from typing import List, Optional

from .credentials import parse_connection_string


class ConsoleMessagingClient:
    """Log payloads instead of sending them (dry runs)."""

    def __init__(
        self,
        connection_string: str,
        *,
        echo: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        self._device_id = parse_connection_string(connection_string).device_id
        self._echo = echo
        self._log = logger or logging.getLogger(__name__)
        self.sent: List[str] = []

    def send_event(self, payload: str) -> None:
        self.sent.append(payload)
        if self._echo:
            print(f"EVENT {self._device_id} -> {payload}")
        self._log.info("DRY_RUN_EVENT device=%s bytes=%d", self._device_id, len(payload))

    def close(self) -> None:
        return None
