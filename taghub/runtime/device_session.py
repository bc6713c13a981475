# taghub/runtime/device_session.py
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from taghub.core.errors import ChannelConfigError, DeviceConnectError, TagHubError
from taghub.interfaces.driver import DeviceHandle, WirelessDriver
from taghub.model.channel import ChannelDefinition
from taghub.model.device import DeviceDescriptor
from taghub.model.registry import ChannelRegistry
from taghub.runtime.scheduler import Scheduler, TimerHandle
from taghub.runtime.snapshot import StateSnapshot
from taghub.runtime.state import SessionState, SessionStatus

DISCONNECT_EVENT = "disconnect"
DEFAULT_RETRY_DELAY_S = 5.0

SupervisorCallback = Callable[["DeviceSession", BaseException], None]


class DeviceSession:
    """
    Connection lifecycle of exactly one device.

        discovering -> connecting -> configuring -> active
             ^                                        |
             +------------- (disconnect) -------------+

    A disconnect clears the send gate and re-enters `discovering` through a
    scheduler timer after `retry_delay_s`. Handshake and channel setup
    failures move the session to `failed`: run() raises them, timer-driven
    cycles hand them to `supervisor`. A failed session is never retried.
    """

    def __init__(
        self,
        *,
        descriptor: DeviceDescriptor,
        driver: WirelessDriver,
        registry: ChannelRegistry,
        snapshot: StateSnapshot,
        scheduler: Scheduler,
        retry_delay_s: float = DEFAULT_RETRY_DELAY_S,
        supervisor: Optional[SupervisorCallback] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if retry_delay_s < 0:
            raise ValueError(f"retry_delay_s must be >= 0, got {retry_delay_s}")

        self._descriptor = descriptor
        self._driver = driver
        self._registry = registry
        self._snapshot = snapshot
        self._scheduler = scheduler
        self._retry_delay_s = float(retry_delay_s)
        self._supervisor = supervisor
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._handle: Optional[DeviceHandle] = None
        self._channels: List[str] = []
        self._retry_timer: Optional[TimerHandle] = None
        self._reconnects = 0
        self._last_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def descriptor(self) -> DeviceDescriptor:
        return self._descriptor

    @property
    def snapshot(self) -> StateSnapshot:
        return self._snapshot

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    def status(self) -> SessionStatus:
        with self._lock:
            handle = self._handle
            return SessionStatus(
                device_id=self._descriptor.device_id,
                name=self._descriptor.name,
                state=self._state,
                variant=getattr(handle, "type", None) if handle is not None else None,
                channels=tuple(self._channels),
                reconnects=self._reconnects,
                last_error=self._last_error,
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def run(self) -> None:
        """
        One full cycle: discover, connect, configure, then mark active.

        Blocks the calling thread until the device is found and configured.
        Raises DeviceConnectError / ChannelConfigError on fatal failures.
        """
        with self._lock:
            if self._state is SessionState.FAILED:
                raise RuntimeError(f"DeviceSession {self._descriptor.device_id} has failed")
            self._retry_timer = None

        handle = self.discover()
        try:
            self.connect(handle)
            self.configure(handle)
        except TagHubError:
            if not self._is_current(handle):
                # disconnected mid-setup; the pending retry owns the next cycle
                self._log.warning(
                    "SESSION_SETUP_INTERRUPTED device=%s", self._descriptor.device_id
                )
                return
            raise

        with self._lock:
            if self._handle is handle:
                self._snapshot.send_enabled = True
            if self._handle is not handle:
                # the gate stays shut once a disconnect has cleared the handle
                self._snapshot.send_enabled = False
                self._log.info(
                    "SESSION_SETUP_SUPERSEDED device=%s", self._descriptor.device_id
                )
                return
            self._state = SessionState.ACTIVE
            self._last_error = None
            channels = list(self._channels)
        self._log.info(
            "SESSION_ACTIVE device=%s name=%s channels=%s",
            self._descriptor.device_id,
            self._descriptor.name,
            channels,
        )

    def discover(self) -> DeviceHandle:
        """Wait (without timeout) until the driver finds this device."""
        self._set_state(SessionState.DISCOVERING)
        self._log.info("DISCOVERING device=%s", self._descriptor.device_id)

        handle = self._driver.discover_by_id(self._descriptor.device_id)

        with self._lock:
            self._handle = handle
            self._channels = []

        handle.on(DISCONNECT_EVENT, lambda *_: self._on_disconnect(handle))
        self._log.info(
            "DEVICE_FOUND device=%s variant=%s",
            getattr(handle, "id", self._descriptor.device_id),
            getattr(handle, "type", None),
        )
        return handle

    def connect(self, handle: DeviceHandle) -> None:
        """Connection + service-setup handshake. Never retried here."""
        self._set_state(SessionState.CONNECTING, handle)
        self._log.info("CONNECTING device=%s", self._descriptor.device_id)
        try:
            handle.connect_and_set_up()
        except Exception as e:
            self._fail(str(e), handle)
            self._log.warning(
                "CONNECT_FAILED device=%s err=%s", self._descriptor.device_id, e
            )
            raise DeviceConnectError(
                f"Could not connect to device '{self._descriptor.device_id}'.",
                hint=str(e),
                details={"device_id": self._descriptor.device_id},
            ) from None

    def configure(self, handle: DeviceHandle) -> List[str]:
        """
        Enable + subscribe every enabled channel the variant supports and
        disable all others, one acknowledged step at a time. The first
        failing step aborts the remaining ones.
        """
        self._set_state(SessionState.CONFIGURING, handle)
        variant = getattr(handle, "type", None)

        subscribed: List[str] = []
        for ch in self._registry:
            if ch.enabled and ch.supported_by(variant):
                self._log.info(
                    "CHANNEL_ENABLE device=%s channel=%s", self._descriptor.device_id, ch.key
                )
                self._call_op(handle, ch, ch.ops.enable)
                self._call_op(handle, ch, ch.ops.notify)
                self._subscribe(handle, ch)
                subscribed.append(ch.key)
                with self._lock:
                    if self._handle is handle:
                        self._channels = list(subscribed)
            else:
                self._log.debug(
                    "CHANNEL_DISABLE device=%s channel=%s enabled=%s supported=%s",
                    self._descriptor.device_id,
                    ch.key,
                    ch.enabled,
                    ch.supported_by(variant),
                )
                self._call_op(handle, ch, ch.ops.disable)

        return subscribed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _subscribe(self, handle: DeviceHandle, ch: ChannelDefinition) -> None:
        try:
            handle.on(ch.event, self._make_change_handler(ch))
        except Exception as e:
            self._fail(str(e), handle)
            raise ChannelConfigError(
                f"Could not subscribe to '{ch.event}' on device '{self._descriptor.device_id}'.",
                hint=str(e),
                details={"device_id": self._descriptor.device_id, "channel": ch.key},
            ) from None

    def _call_op(self, handle: DeviceHandle, ch: ChannelDefinition, op_name: str) -> None:
        fn = getattr(handle, op_name, None)
        if not callable(fn):
            self._fail(f"driver handle has no '{op_name}'", handle)
            raise ChannelConfigError(
                f"Driver handle does not implement '{op_name}'.",
                hint="Check the driver supports this channel.",
                details={"device_id": self._descriptor.device_id, "channel": ch.key},
            )
        try:
            fn()
        except Exception as e:
            self._fail(str(e), handle)
            self._log.warning(
                "CHANNEL_OP_FAILED device=%s channel=%s op=%s err=%s",
                self._descriptor.device_id,
                ch.key,
                op_name,
                e,
            )
            raise ChannelConfigError(
                f"Channel operation '{op_name}' failed on device '{self._descriptor.device_id}'.",
                hint=str(e),
                details={"device_id": self._descriptor.device_id, "channel": ch.key, "op": op_name},
            ) from None

    def _make_change_handler(self, ch: ChannelDefinition) -> Callable[..., None]:
        snapshot = self._snapshot
        log = self._log
        device_id = self._descriptor.device_id

        def _on_change(*values: float) -> None:
            try:
                converted = ch.convert_values(values)
            except Exception:
                log.exception("CHANGE_HANDLER_ERROR device=%s channel=%s", device_id, ch.key)
                return
            snapshot.update(converted)
            log.debug("READING device=%s channel=%s values=%s", device_id, ch.key, converted)

        return _on_change

    def _on_disconnect(self, handle: DeviceHandle) -> None:
        with self._lock:
            if self._handle is not handle:
                return
            if self._state in (SessionState.FAILED, SessionState.IDLE):
                return
            self._snapshot.send_enabled = False
            self._handle = None
            self._channels = []
            self._state = SessionState.DISCOVERING
            self._reconnects += 1
            self._retry_timer = self._scheduler.call_later(
                self._retry_delay_s,
                self._retry,
                name=f"retry-{self._descriptor.device_id}",
            )

        self._log.warning(
            "DEVICE_DISCONNECTED device=%s retry_in_s=%.1f",
            self._descriptor.device_id,
            self._retry_delay_s,
        )

    def _retry(self) -> None:
        try:
            self.run()
        except Exception as e:
            self.fail(e)

    def fail(self, exc: BaseException) -> None:
        """
        Mark the session failed because of `exc` and report it to the
        supervisor. A failed session is never rediscovered.
        """
        with self._lock:
            timer, self._retry_timer = self._retry_timer, None
        if timer is not None:
            timer.cancel()
        self._fail(getattr(exc, "hint", None) or str(exc))
        cb = self._supervisor
        if cb is None:
            self._log.error(
                "SESSION_FAILED device=%s err=%s", self._descriptor.device_id, exc
            )
            return
        try:
            cb(self, exc)
        except Exception:
            self._log.exception("SUPERVISOR_CALLBACK_ERROR device=%s", self._descriptor.device_id)

    def _is_current(self, handle: DeviceHandle) -> bool:
        with self._lock:
            return self._handle is handle

    def _set_state(self, state: SessionState, handle: Optional[DeviceHandle] = None) -> None:
        with self._lock:
            if handle is not None and self._handle is not handle:
                return
            self._state = state

    def _fail(self, error: str, handle: Optional[DeviceHandle] = None) -> None:
        """Record `error`; a stale handle (already disconnected) leaves the state alone."""
        with self._lock:
            self._last_error = error
            if handle is not None and self._handle is not handle:
                return
            self._state = SessionState.FAILED
        self._snapshot.send_enabled = False

