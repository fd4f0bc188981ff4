"""
Session metrics.

Counts lifecycle events in Prometheus counters for the gateway's /metrics
endpoint. All metrics use the ``esme_`` prefix.

Metrics exposed:
    - ``esme_<event>_total``: one counter per counted lifecycle event
    - ``esme_error_total``: session errors, labelled by ``code``
"""

from __future__ import annotations

from typing import Any

from prometheus_client import CollectorRegistry, Counter, generate_latest

from .events import LifecycleEvent, SessionEvent

COUNTED_EVENTS = (
    LifecycleEvent.CONNECTING,
    LifecycleEvent.CONNECT,
    LifecycleEvent.CLOSE,
    LifecycleEvent.RECONNECTING,
    LifecycleEvent.BINDING,
    LifecycleEvent.BOUND,
    LifecycleEvent.SEND,
    LifecycleEvent.MESSAGE,
)


class SessionMetrics:
    """
    Lifecycle counters; subscribe an instance to the session.

    Each instance owns its CollectorRegistry, so several sessions (or
    tests) never collide on metric names. ``counters`` and ``errors``
    mirror the Prometheus values for get_stats().

    Example:
        metrics = SessionMetrics()
        session.subscribe(metrics)
        ...
        print(metrics.render().decode())
    """

    def __init__(self, prefix: str = "esme"):
        self.prefix = prefix
        self._build()

    def _build(self) -> None:
        self.registry = CollectorRegistry()
        self.events = {
            event.value: Counter(
                f"{self.prefix}_{event.value}",
                f"Number of {event.value} events",
                registry=self.registry,
            )
            for event in COUNTED_EVENTS
        }
        self.error_counter = Counter(
            f"{self.prefix}_error",
            "Number of session errors by kind",
            ["code"],
            registry=self.registry,
        )
        self.counters: dict[str, int] = {event.value: 0 for event in COUNTED_EVENTS}
        self.errors: dict[str, int] = {}

    def on_event(self, event: SessionEvent) -> None:
        if event.kind is LifecycleEvent.ERROR:
            code = event.error.value if event.error else "unknown"
            self.error_counter.labels(code=code).inc()
            self.errors[code] = self.errors.get(code, 0) + 1
        elif event.kind.value in self.events:
            self.events[event.kind.value].inc()
            self.counters[event.kind.value] += 1

    def get_stats(self) -> dict[str, Any]:
        return {
            "events": dict(self.counters),
            "errors": dict(self.errors),
        }

    def render(self) -> bytes:
        """Prometheus text exposition of the registry."""
        return generate_latest(self.registry)

    def reset(self) -> None:
        """Start over with a fresh registry; Prometheus counters never go down."""
        self._build()
