"""
Keepalive watchdog (enquire_link).

A single inactivity timer is re-armed on every sign of life. When it
expires the watchdog sends one heartbeat and waits for the response; a
missing response within the deadline reports the peer as unresponsive.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class KeepaliveWatchdog:
    """
    Inactivity timer plus at most one heartbeat in flight.

    Args:
        heartbeat: Coroutine function sending enquire_link and awaiting the response
        on_timeout: Called once when a heartbeat misses its deadline
        interval: Seconds of inactivity before a heartbeat is sent
        deadline: Seconds to wait for the heartbeat response
    """

    def __init__(
        self,
        heartbeat: Callable[[], Awaitable[Any]],
        on_timeout: Callable[[], Any],
        interval: float,
        deadline: float,
    ):
        self._heartbeat = heartbeat
        self._on_timeout = on_timeout
        self.interval = interval
        self.deadline = deadline
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None
        self._pinging = False

    @property
    def pinging(self) -> bool:
        """True while a heartbeat is awaiting its response."""
        return self._pinging

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def touch(self) -> None:
        """Record activity: cancel the inactivity timer and arm a new one."""
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.interval, self._fire)

    def _fire(self) -> None:
        self._handle = None
        if self._pinging:
            logger.debug("Keepalive already in flight, skipping")
            return
        self._pinging = True
        self._task = asyncio.get_running_loop().create_task(self._ping())

    async def _ping(self) -> None:
        logger.debug("enquire_link...")
        timed_out = False
        responded = False
        owner = False
        try:
            await asyncio.wait_for(self._heartbeat(), timeout=self.deadline)
            responded = True
        except asyncio.TimeoutError:
            timed_out = True
        except Exception as e:
            # Connection loss is handled by the session's close path
            logger.warning(f"Keepalive failed: {e}")
        finally:
            # cancel() may already have released the slot
            owner = self._task is asyncio.current_task()
            if owner:
                self._pinging = False
                self._task = None

        if not owner:
            return
        if timed_out:
            logger.warning(f"enquire_link timeout after {self.deadline:.2f}s")
            self._on_timeout()
        elif responded:
            logger.debug("enquire_link OK")
            self.touch()

    def cancel(self) -> None:
        """Stop the inactivity timer and abandon any heartbeat in flight."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()
        self._task = None
        self._pinging = False
