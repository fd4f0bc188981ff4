"""
Tests for reconnect backoff.
"""

import asyncio

import pytest

from smppgate.esme.retry import FALLBACK_DELAY, ReconnectBackoff, StepBackoff


# =============================================================================
# Strategy Tests
# =============================================================================


class TestStepBackoff:
    """Tests for StepBackoff."""

    def test_first_then_subsequent(self):
        backoff = StepBackoff(initial=3.0, subsequent=5.0)

        assert backoff.get_delay(1) == 3.0
        assert backoff.get_delay(2) == 5.0
        assert backoff.get_delay(10) == 5.0

    def test_zero_or_missing_falls_back(self):
        backoff = StepBackoff(initial=0, subsequent=None)

        assert backoff.get_delay(1) == FALLBACK_DELAY == 60.0
        assert backoff.get_delay(2) == FALLBACK_DELAY


# =============================================================================
# ReconnectBackoff Tests
# =============================================================================


class TestReconnectBackoff:
    """Tests for the reconnect scheduler."""

    @pytest.mark.asyncio
    async def test_schedule_fires_once(self):
        fired = []
        backoff = ReconnectBackoff(StepBackoff(0.01, 0.01), on_ready=lambda: fired.append(1))

        assert backoff.schedule() == 0.01
        assert backoff.pending is True
        await asyncio.sleep(0.03)

        assert fired == [1]
        assert backoff.pending is False

    @pytest.mark.asyncio
    async def test_pending_not_rescheduled(self):
        backoff = ReconnectBackoff(StepBackoff(0.01, 0.02), on_ready=lambda: None)

        assert backoff.schedule() == 0.01
        assert backoff.schedule() is None
        assert backoff.failures == 1
        backoff.cancel()

    @pytest.mark.asyncio
    async def test_counter_escalates_and_resets(self):
        backoff = ReconnectBackoff(StepBackoff(0.01, 0.02), on_ready=lambda: None)

        assert backoff.schedule() == 0.01
        backoff.cancel()
        assert backoff.schedule() == 0.02
        backoff.cancel()
        assert backoff.failures == 2

        backoff.reset()
        assert backoff.failures == 0
        assert backoff.schedule() == 0.01
        backoff.cancel()

    @pytest.mark.asyncio
    async def test_cancel_prevents_fire(self):
        fired = []
        backoff = ReconnectBackoff(StepBackoff(0.01, 0.01), on_ready=lambda: fired.append(1))

        backoff.schedule()
        backoff.cancel()
        await asyncio.sleep(0.03)

        assert fired == []
        assert backoff.get_stats() == {"failures": 1, "pending": False}
