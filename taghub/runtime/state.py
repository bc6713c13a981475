# taghub/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class SessionState(str, Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    CONNECTING = "connecting"
    CONFIGURING = "configuring"
    ACTIVE = "active"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionStatus:
    """
    A snapshot of one device session, safe to share across threads.
    """
    device_id: str
    name: str
    state: SessionState
    variant: Optional[str] = None
    channels: Tuple[str, ...] = ()
    reconnects: int = 0
    last_error: Optional[str] = None


@dataclass(frozen=True)
class PublisherStats:
    """
    Counters of one telemetry publisher.
    """
    ticks: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    last_error: Optional[str] = None
