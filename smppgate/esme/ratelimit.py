"""
Client-side throttling for outbound submissions.

Token bucket sized from the session's throttle settings. The bucket fills
continuously at capacity/period and each submit_sm spends one token.

Reservation is a single critical section under an asyncio.Lock, so two
concurrent submit() calls can never both see the last token.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Token Bucket State
# =============================================================================


@dataclass
class TokenBucket:
    """
    Token bucket state.

    The bucket fills at a constant rate and has a maximum capacity.
    """

    tokens: float
    last_update: float
    capacity: float
    rate: float  # tokens per second

    def replenish(self) -> None:
        """Replenish tokens based on elapsed time."""
        now = time.monotonic()
        elapsed = now - self.last_update
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_update = now

    def consume(self, cost: float = 1.0) -> bool:
        """
        Attempt to consume tokens.

        Returns True if tokens were consumed, False if insufficient.
        """
        self.replenish()
        if self.tokens >= cost:
            self.tokens -= cost
            return True
        return False

    def time_until_available(self, cost: float = 1.0) -> float:
        """Calculate time until enough tokens are available."""
        self.replenish()
        if self.tokens >= cost:
            return 0.0
        needed = cost - self.tokens
        return needed / self.rate

    @classmethod
    def full(cls, capacity: int, period: float) -> TokenBucket:
        """Create a full bucket refilling `capacity` tokens every `period` seconds."""
        return cls(
            tokens=float(capacity),
            last_update=time.monotonic(),
            capacity=float(capacity),
            rate=capacity / period,
        )


# =============================================================================
# Throttle Gate
# =============================================================================


@dataclass
class ThrottleGate:
    """
    Serialized admission control in front of submit_sm.

    Example:
        gate = ThrottleGate(capacity=20, period=60.0)  # 20 per minute

        if not await gate.reserve():
            raise SessionError(ErrorKind.CLIENT_THROTTLE)

    Args:
        capacity: Bucket size (burst), or None to disable throttling
        period: Seconds to refill a full bucket
    """

    capacity: int | None = None
    period: float = 60.0
    _bucket: TokenBucket | None = field(default=None, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.capacity is not None:
            if self.capacity <= 0 or self.period <= 0:
                raise ValueError("throttle capacity and period must be positive")
            self._bucket = TokenBucket.full(self.capacity, self.period)

    @property
    def enabled(self) -> bool:
        return self._bucket is not None

    async def reserve(self) -> bool:
        """
        Take one token if available.

        Returns:
            True if admitted, False if the bucket is empty (nothing changes)
        """
        if self._bucket is None:
            return True

        async with self._lock:
            admitted = self._bucket.consume()
            remaining = self._bucket.tokens

        if admitted:
            logger.debug(f"Throttle token reserved, remaining={remaining:.1f}")
        else:
            logger.debug(f"Throttle exhausted, tokens={remaining:.2f}")
        return admitted

    def remaining(self) -> float | None:
        """Snapshot of available tokens (None when throttling is off)."""
        if self._bucket is None:
            return None
        self._bucket.replenish()
        return self._bucket.tokens

    def retry_after(self) -> float:
        """Seconds until the next token is available."""
        if self._bucket is None:
            return 0.0
        return self._bucket.time_until_available()

    def get_config(self) -> dict[str, Any]:
        return {
            "capacity": self.capacity,
            "period": self.period,
        }
