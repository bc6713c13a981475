from __future__ import annotations

from typing import Callable, Dict, List, Optional

import pytest

from taghub.app.config import FleetConfig
from taghub.model.device import DeviceDescriptor


class ManualTimer:
    def __init__(self, due: float, fn: Callable[[], None], interval: Optional[float], name: str):
        self.due = due
        self.fn = fn
        self.interval = interval
        self.name = name
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by advance(); callbacks run on the test thread."""

    def __init__(self):
        self.now = 0.0
        self.timers: List[ManualTimer] = []

    def call_later(self, delay_s, fn, *, name=""):
        t = ManualTimer(self.now + float(delay_s), fn, None, name)
        self.timers.append(t)
        return t

    def call_every(self, interval_s, fn, *, name=""):
        t = ManualTimer(self.now + float(interval_s), fn, float(interval_s), name)
        self.timers.append(t)
        return t

    def pending(self, prefix: str = "") -> List[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and t.name.startswith(prefix)]

    def advance(self, seconds: float = 0.0) -> None:
        target = self.now + float(seconds)
        while True:
            due = [t for t in self.timers if not t.cancelled and t.due <= target + 1e-9]
            if not due:
                break
            t = min(due, key=lambda x: x.due)
            self.now = t.due
            if t.interval is None:
                self.timers.remove(t)
            else:
                t.due += t.interval
            t.fn()
        self.now = target


class FakeHandle:
    """Device handle recording every driver call in order."""

    def __init__(self, device_id: str, variant: Optional[str] = "cc2650"):
        self.id = device_id
        self.type = variant
        self.calls: List[str] = []
        self.handlers: Dict[str, List[Callable]] = {}
        self.connect_error: Optional[Exception] = None
        self.op_errors: Dict[str, Exception] = {}
        self.op_hooks: Dict[str, Callable[[], None]] = {}

    def connect_and_set_up(self) -> None:
        self.calls.append("connect_and_set_up")
        if self.connect_error is not None:
            raise self.connect_error

    def on(self, event, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event, *values) -> None:
        for h in list(self.handlers.get(event, ())):
            h(*values)

    def __getattr__(self, name):
        if name.split("_", 1)[0] in ("enable", "notify", "disable"):
            def _op():
                self.calls.append(name)
                hook = self.op_hooks.get(name)
                if hook is not None:
                    hook()
                err = self.op_errors.get(name)
                if err is not None:
                    raise err
            return _op
        raise AttributeError(name)


class FakeDriver:
    """Returns a fresh FakeHandle per discovery; `prepare` pre-seeds handles."""

    def __init__(self, variants: Optional[Dict[str, str]] = None):
        self.variants = variants or {}
        self.discover_calls: List[str] = []
        self.handles: Dict[str, List[FakeHandle]] = {}
        self._queued: Dict[str, List[FakeHandle]] = {}

    def prepare(self, device_id: str, handle: FakeHandle) -> FakeHandle:
        self._queued.setdefault(device_id, []).append(handle)
        return handle

    def discover_by_id(self, device_id: str) -> FakeHandle:
        self.discover_calls.append(device_id)
        queued = self._queued.get(device_id)
        if queued:
            handle = queued.pop(0)
        else:
            handle = FakeHandle(device_id, self.variants.get(device_id, "cc2650"))
        self.handles.setdefault(device_id, []).append(handle)
        return handle

    def last(self, device_id: str) -> FakeHandle:
        return self.handles[device_id][-1]


class FakeMessagingClient:
    def __init__(self, connection_string: str = ""):
        self.connection_string = connection_string
        self.sent: List[str] = []
        self.fail_with: Optional[Exception] = None
        self.closed = False

    def send_event(self, payload: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(payload)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def messaging() -> FakeMessagingClient:
    return FakeMessagingClient()


@pytest.fixture
def fake_handle_cls():
    return FakeHandle


@pytest.fixture
def fake_driver_cls():
    return FakeDriver


@pytest.fixture
def fake_messaging_cls():
    return FakeMessagingClient


@pytest.fixture
def descriptor() -> DeviceDescriptor:
    return DeviceDescriptor(device_id="b0b448c98a01", name="lab-tag", key="c2VjcmV0LWtleQ==")


@pytest.fixture
def make_config():
    def _make(*, devices=None, channels=None, **kw) -> FleetConfig:
        devices = devices or (
            DeviceDescriptor(device_id="b0b448c98a01", name="lab-tag", key="c2VjcmV0LWtleQ=="),
        )
        return FleetConfig(
            hub_name=kw.pop("hub_name", "test-hub"),
            devices=tuple(devices),
            channel_flags=dict(channels or {}),
            **kw,
        )
    return _make
