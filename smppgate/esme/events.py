"""
Typed lifecycle events emitted by the session.

Observers implement SessionObserver and are registered with
Session.subscribe(). Dispatch is synchronous and a failing observer is
logged, never allowed to break the state machine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from .errors import ErrorKind

logger = logging.getLogger(__name__)


class LifecycleEvent(str, Enum):
    """Session lifecycle event names."""

    CONNECTING = "connecting"
    CONNECT = "connect"
    CLOSE = "close"
    RECONNECTING = "reconnecting"
    BINDING = "binding"
    BOUND = "bound"
    READY = "ready"
    SEND = "send"
    MESSAGE = "message"
    ERROR = "error"


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class SessionEvent:
    """
    One lifecycle event.

    Attributes:
        kind: Event name
        error: Error classification for ERROR events
        data: Event payload (delay, status, pdu, ...)
        timestamp: When the event was emitted
    """

    kind: LifecycleEvent
    error: ErrorKind | None = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "error": self.error.value if self.error else None,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


@runtime_checkable
class SessionObserver(Protocol):
    """Receives session lifecycle events."""

    def on_event(self, event: SessionEvent) -> None: ...


class EventDispatcher:
    """Fan-out of events to registered observers."""

    def __init__(self) -> None:
        self._observers: list[SessionObserver] = []

    def subscribe(self, observer: SessionObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: SessionObserver) -> bool:
        if observer in self._observers:
            self._observers.remove(observer)
            return True
        return False

    def emit(self, event: SessionEvent) -> None:
        for observer in list(self._observers):
            try:
                observer.on_event(event)
            except Exception as e:
                logger.error(f"Observer {observer!r} failed on {event.kind.value}: {e}", exc_info=True)

    def __len__(self) -> int:
        return len(self._observers)
