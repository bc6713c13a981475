# taghub/runtime/snapshot.py
from __future__ import annotations

import threading
from typing import Dict, List, Mapping


class StateSnapshot:
    """
    Latest known value per field for one device, plus the send gate.

    Written by the owning session's change handlers, read by the device's
    publisher. Each write is last-value-wins per field; a read returns a
    copy taken under the lock, so it never observes a half-applied update
    of a single field, but fields are independent of each other.
    """

    def __init__(self, device_id: str):
        self.device_id = device_id
        self._lock = threading.RLock()
        self._values: Dict[str, float] = {}
        self._send_enabled = False

    @property
    def send_enabled(self) -> bool:
        with self._lock:
            return self._send_enabled

    @send_enabled.setter
    def send_enabled(self, value: bool) -> None:
        with self._lock:
            self._send_enabled = bool(value)

    def set(self, field: str, value: float) -> None:
        with self._lock:
            self._values[field] = value

    def update(self, values: Mapping[str, float]) -> None:
        with self._lock:
            self._values.update(values)

    def get(self, field: str) -> float | None:
        with self._lock:
            return self._values.get(field)

    def read(self) -> Dict[str, float]:
        """Point-in-time copy of all known fields (does not clear)."""
        with self._lock:
            return dict(self._values)

    def fields(self) -> List[str]:
        with self._lock:
            return list(self._values.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __repr__(self) -> str:
        with self._lock:
            return (
                f"StateSnapshot(device_id='{self.device_id}', "
                f"fields={len(self._values)}, send_enabled={self._send_enabled})"
            )
