# taghub/runtime/scheduler.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """
    Timer source for sessions and publishers.

    call_later(delay_s, fn): run fn once after delay_s seconds
    call_every(interval_s, fn): run fn every interval_s seconds, first run
        one interval after registration
    """

    def call_later(self, delay_s: float, fn: Callable[[], None], *, name: str = "") -> TimerHandle: ...

    def call_every(self, interval_s: float, fn: Callable[[], None], *, name: str = "") -> TimerHandle: ...


class _OneShot(threading.Thread):
    """Daemon thread that waits delay_s then runs fn unless cancelled."""

    def __init__(self, delay_s: float, fn: Callable[[], None], *, name: str, logger: logging.Logger):
        super().__init__(daemon=True, name=name or None)
        self._delay_s = max(0.0, float(delay_s))
        self._fn = fn
        self._log = logger
        self._cancelled = threading.Event()

    def run(self) -> None:
        if self._cancelled.wait(self._delay_s):
            return
        try:
            self._fn()
        except Exception:
            self._log.exception("TIMER_CALLBACK_ERROR name=%s", self.name)

    def cancel(self) -> None:
        self._cancelled.set()


class _Periodic(threading.Thread):
    """Daemon thread running fn every interval_s until cancelled."""

    def __init__(self, interval_s: float, fn: Callable[[], None], *, name: str, logger: logging.Logger):
        super().__init__(daemon=True, name=name or None)
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got {interval_s}")
        self._interval_s = float(interval_s)
        self._fn = fn
        self._log = logger
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.wait(self._interval_s):
            try:
                self._fn()
            except Exception:
                # a failing tick never stops the next one
                self._log.exception("PERIODIC_CALLBACK_ERROR name=%s", self.name)

    def cancel(self) -> None:
        self._stop_event.set()


class ThreadScheduler:
    """Scheduler backed by one daemon thread per timer."""

    def __init__(self, *, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)

    def call_later(self, delay_s: float, fn: Callable[[], None], *, name: str = "") -> TimerHandle:
        t = _OneShot(delay_s, fn, name=name, logger=self._log)
        t.start()
        return t

    def call_every(self, interval_s: float, fn: Callable[[], None], *, name: str = "") -> TimerHandle:
        t = _Periodic(interval_s, fn, name=name, logger=self._log)
        t.start()
        return t
