"""
Reconnect backoff for the ESME session.

Provides:
- BackoffStrategy: Delay calculation between reconnect attempts
- StepBackoff: Short first delay, longer delay for every later attempt
- ReconnectBackoff: Consecutive-failure counter plus a single pending timer
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

# Used when a configured delay is missing or zero
FALLBACK_DELAY = 60.0


# =============================================================================
# Backoff Strategies
# =============================================================================


class BackoffStrategy(ABC):
    """
    Abstract base for backoff delay calculation.

    Backoff strategies determine how long to wait before the next
    reconnect attempt.
    """

    @abstractmethod
    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay before the next attempt.

        Args:
            attempt: Consecutive failure count (1-indexed)

        Returns:
            Delay in seconds
        """
        ...

    def reset(self) -> None:
        """Reset any internal state (for reuse)."""


@dataclass
class StepBackoff(BackoffStrategy):
    """
    Two-step delay.

    Attempt 1 waits `initial`, every later attempt waits `subsequent`.
    A missing or zero value falls back to `fallback`.

    Example:
        backoff = StepBackoff(initial=3.0, subsequent=5.0)
        # Attempt 1: 3s, Attempt 2: 5s, Attempt 3: 5s, ...
    """

    initial: float | None = 3.0
    subsequent: float | None = 5.0
    fallback: float = FALLBACK_DELAY

    def get_delay(self, attempt: int) -> float:
        delay = self.initial if attempt <= 1 else self.subsequent
        return delay or self.fallback


# =============================================================================
# Reconnect Scheduler
# =============================================================================


class ReconnectBackoff:
    """
    Schedules reconnect attempts after disconnects and bind failures.

    The failure counter grows on every scheduled attempt and is reset by
    the session after a successful bind. Only one attempt can be pending;
    schedule() while one is pending is ignored.

    Example:
        backoff = ReconnectBackoff(StepBackoff(3.0, 5.0), on_ready=session.connect)
        backoff.schedule()   # connect() runs in 3s
        backoff.schedule()   # ignored, already pending
    """

    def __init__(
        self,
        strategy: BackoffStrategy,
        on_ready: Callable[[], Any],
    ):
        self.strategy = strategy
        self._on_ready = on_ready
        self._failures = 0
        self._handle: asyncio.TimerHandle | None = None

    @property
    def failures(self) -> int:
        """Consecutive failures since the last successful bind."""
        return self._failures

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> float | None:
        """
        Arm the reconnect timer.

        Returns:
            The delay in seconds, or None if an attempt was already pending
        """
        if self._handle is not None:
            logger.debug("Reconnect already pending, not rescheduling")
            return None

        self._failures += 1
        delay = self.strategy.get_delay(self._failures)
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._fire)
        logger.info(f"Reconnect in {delay:.2f}s (attempt {self._failures})")
        return delay

    def _fire(self) -> None:
        self._handle = None
        self._on_ready()

    def reset(self) -> None:
        """Clear the failure counter (after a successful bind)."""
        self._failures = 0
        self.strategy.reset()

    def cancel(self) -> None:
        """Drop a pending attempt, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def get_stats(self) -> dict[str, Any]:
        return {
            "failures": self._failures,
            "pending": self.pending,
        }
