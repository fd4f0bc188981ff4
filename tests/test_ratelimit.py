"""
Tests for the client-side throttle gate.
"""

import asyncio
import time

import pytest

from smppgate.esme.ratelimit import ThrottleGate, TokenBucket


# =============================================================================
# TokenBucket Tests
# =============================================================================


class TestTokenBucket:
    """Tests for TokenBucket."""

    def test_full(self):
        bucket = TokenBucket.full(capacity=10, period=60.0)

        assert bucket.tokens == 10.0
        assert bucket.capacity == 10.0
        assert bucket.rate == pytest.approx(10 / 60.0)

    def test_consume_failure_changes_nothing(self):
        bucket = TokenBucket(
            tokens=0.5,
            last_update=time.monotonic(),
            capacity=10.0,
            rate=0.001,
        )

        assert bucket.consume() is False
        assert bucket.tokens == pytest.approx(0.5, abs=0.01)

    def test_replenish_caps_at_capacity(self):
        bucket = TokenBucket(
            tokens=0.0,
            last_update=time.monotonic() - 100.0,  # 100 seconds ago
            capacity=10.0,
            rate=1.0,
        )

        bucket.replenish()

        assert bucket.tokens == 10.0  # Capped

    def test_time_until_available(self):
        bucket = TokenBucket(
            tokens=0.0,
            last_update=time.monotonic(),
            capacity=10.0,
            rate=2.0,
        )

        assert bucket.time_until_available() == pytest.approx(0.5, abs=0.01)


# =============================================================================
# ThrottleGate Tests
# =============================================================================


class TestThrottleGate:
    """Tests for ThrottleGate."""

    @pytest.mark.asyncio
    async def test_disabled_always_admits(self):
        gate = ThrottleGate()

        assert gate.enabled is False
        for _ in range(100):
            assert await gate.reserve() is True
        assert gate.remaining() is None
        assert gate.retry_after() == 0.0

    @pytest.mark.asyncio
    async def test_capacity_then_reject(self):
        gate = ThrottleGate(capacity=2, period=60.0)

        assert await gate.reserve() is True
        assert await gate.reserve() is True
        assert await gate.reserve() is False
        assert gate.retry_after() > 0

    @pytest.mark.asyncio
    async def test_refills_over_period(self):
        gate = ThrottleGate(capacity=2, period=0.1)

        await gate.reserve()
        await gate.reserve()
        assert await gate.reserve() is False

        await asyncio.sleep(0.06)
        assert await gate.reserve() is True

    @pytest.mark.asyncio
    async def test_concurrent_reservations_never_oversell(self):
        gate = ThrottleGate(capacity=5, period=3600.0)

        results = await asyncio.gather(*(gate.reserve() for _ in range(20)))

        assert results.count(True) == 5
        assert results.count(False) == 15

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            ThrottleGate(capacity=0)
        with pytest.raises(ValueError):
            ThrottleGate(capacity=1, period=0)

    def test_get_config(self):
        assert ThrottleGate(capacity=3, period=1.5).get_config() == {"capacity": 3, "period": 1.5}
