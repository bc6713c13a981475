# taghub/driver/simulated.py
from __future__ import annotations

import logging
import random
import threading
from typing import Callable, Dict, List, Optional, Tuple

from taghub.interfaces.driver import ChangeHandler
from taghub.model.device import normalize_device_id


# capability -> (change event, generator of one set of raw values)
_Generator = Callable[[random.Random], Tuple[float, ...]]

_CAPABILITIES: Dict[str, Tuple[str, _Generator]] = {
    "ir_temperature": ("irTemperatureChange", lambda r: (r.uniform(18, 30), r.uniform(18, 26))),
    "accelerometer": ("accelerometerChange", lambda r: (r.gauss(0, 0.05), r.gauss(0, 0.05), r.gauss(1, 0.05))),
    "humidity": ("humidityChange", lambda r: (r.uniform(18, 26), r.uniform(30, 60))),
    "magnetometer": ("magnetometerChange", lambda r: (r.uniform(-50, 50), r.uniform(-50, 50), r.uniform(-50, 50))),
    "barometric_pressure": ("barometricPressureChange", lambda r: (r.uniform(990, 1030),)),
    "gyroscope": ("gyroscopeChange", lambda r: (r.gauss(0, 1), r.gauss(0, 1), r.gauss(0, 1))),
    "luxometer": ("luxometerChange", lambda r: (r.uniform(0, 1000),)),
}

_VARIANT_CAPABILITIES: Dict[str, frozenset] = {
    "cc2540": frozenset(_CAPABILITIES) - {"luxometer"},
    "cc2650": frozenset(_CAPABILITIES),
}


class SimulatedTag:
    """
    In-process stand-in for a SensorTag handle.

    Enabled + notified channels emit a random reading every
    `reading_interval_s` from a daemon thread started by connect_and_set_up().
    """

    def __init__(
        self,
        device_id: str,
        *,
        variant: str = "cc2650",
        reading_interval_s: float = 1.0,
        seed: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if variant not in _VARIANT_CAPABILITIES:
            raise ValueError(f"Unknown simulated variant '{variant}'")
        self.id = device_id
        self.type = variant
        self._interval_s = float(reading_interval_s)
        self._rng = random.Random(seed)
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._handlers: Dict[str, List[ChangeHandler]] = {}
        self._enabled: set[str] = set()
        self._notifying: set[str] = set()
        self._connected = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ---------------- driver surface ----------------
    def connect_and_set_up(self) -> None:
        with self._lock:
            if self._connected:
                return
            self._connected = True
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._emit_loop, daemon=True, name=f"sim-{self.id}")
        self._thread.start()

    def on(self, event: str, handler: ChangeHandler) -> None:
        with self._lock:
            self._handlers.setdefault(event, []).append(handler)

    def __getattr__(self, name: str) -> Callable[[], None]:
        op, _, capability = name.partition("_")
        if op in ("enable", "notify", "disable") and capability in _CAPABILITIES:
            return lambda: self._channel_op(op, capability)
        raise AttributeError(name)

    # ---------------- simulation controls ----------------
    def disconnect(self) -> None:
        """Drop the link and emit 'disconnect' like a tag leaving range."""
        with self._lock:
            if not self._connected:
                return
            self._connected = False
            self._enabled.clear()
            self._notifying.clear()
        self._stop_event.set()
        self._emit("disconnect")

    def emit_reading(self, capability: str) -> None:
        event, gen = _CAPABILITIES[capability]
        self._emit(event, *gen(self._rng))

    # ---------------- Internal ----------------
    def _channel_op(self, op: str, capability: str) -> None:
        with self._lock:
            if not self._connected:
                raise RuntimeError(f"Tag {self.id} is not connected")
            if capability not in _VARIANT_CAPABILITIES[self.type]:
                if op == "disable":
                    return
                raise RuntimeError(f"Tag {self.id} ({self.type}) has no {capability}")
            if op == "enable":
                self._enabled.add(capability)
            elif op == "notify":
                self._notifying.add(capability)
            else:
                self._enabled.discard(capability)
                self._notifying.discard(capability)

    def _emit(self, event: str, *values: float) -> None:
        with self._lock:
            handlers = list(self._handlers.get(event, ()))
        for h in handlers:
            try:
                h(*values)
            except Exception:
                self._log.exception("SIM_HANDLER_ERROR device=%s event=%s", self.id, event)

    def _emit_loop(self) -> None:
        while not self._stop_event.wait(self._interval_s):
            with self._lock:
                active = sorted(self._enabled & self._notifying)
            for capability in active:
                self.emit_reading(capability)


class SimulatedDriver:
    """
    Driver producing SimulatedTag handles.

    `variants` maps device ids to a hardware variant; other ids get
    `default_variant`. Discovery returns after `discover_delay_s`.
    """

    def __init__(
        self,
        *,
        default_variant: str = "cc2650",
        variants: Optional[Dict[str, str]] = None,
        discover_delay_s: float = 0.0,
        reading_interval_s: float = 1.0,
        seed: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._default_variant = default_variant
        self._variants = {normalize_device_id(k): str(v) for k, v in (variants or {}).items()}
        self._discover_delay_s = float(discover_delay_s)
        self._reading_interval_s = float(reading_interval_s)
        self._seed = seed
        self._log = logger or logging.getLogger(__name__)
        self._wait = threading.Event()
        self.tags: Dict[str, SimulatedTag] = {}

    def discover_by_id(self, device_id: str) -> SimulatedTag:
        if self._discover_delay_s > 0:
            self._wait.wait(self._discover_delay_s)
        tag = SimulatedTag(
            device_id,
            variant=self._variants.get(normalize_device_id(device_id), self._default_variant),
            reading_interval_s=self._reading_interval_s,
            seed=self._seed,
            logger=self._log,
        )
        self.tags[device_id] = tag
        return tag
