# taghub/interfaces/messaging.py
from __future__ import annotations

from typing import Callable, Protocol


class MessagingClient(Protocol):
    def send_event(self, payload: str) -> None:
        """Deliver one serialized payload; raise DeliveryError on failure."""
        ...

    def close(self) -> None: ...


#: Builds a messaging client from a hub connection string.
MessagingFactory = Callable[[str], MessagingClient]
