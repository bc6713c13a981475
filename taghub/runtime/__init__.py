from .device_session import DeviceSession
from .publisher import TelemetryPublisher, build_payload
from .scheduler import Scheduler, ThreadScheduler, TimerHandle
from .snapshot import StateSnapshot
from .state import PublisherStats, SessionState, SessionStatus

__all__ = ["DeviceSession",
           "PublisherStats",
           "Scheduler",
           "SessionState",
           "SessionStatus",
           "StateSnapshot",
           "TelemetryPublisher",
           "ThreadScheduler",
           "TimerHandle",
           "build_payload"]
