"""
Response classifier: submit_sm_resp status -> SessionError.

A throttling status also starts a cool-down window during which the
session rejects submissions without touching the transport.
"""

from __future__ import annotations

import asyncio
import logging

from .constants import CommandStatus, status_name
from .errors import ErrorKind, SessionError

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = 60.0

INVALID_ADDRESS_STATUSES = frozenset(
    {
        CommandStatus.ESME_RINVDSTADR,
        CommandStatus.ESME_RINVDSTTON,
        CommandStatus.ESME_RINVDSTNPI,
        CommandStatus.ESME_RINVDSTADDRSUBUNIT,
    }
)


def classify_status(status: int) -> SessionError | None:
    """Map a command_status to an error without side effects."""
    if status == CommandStatus.ESME_ROK:
        return None
    if status == CommandStatus.ESME_RTHROTTLED:
        return SessionError(ErrorKind.SERVER_THROTTLE, "server throttle triggered", status)
    if status == CommandStatus.ESME_RMSGQFUL:
        # MC resource limit: per-destination or global undelivered queue
        return SessionError(ErrorKind.SUBMIT_FAILED, "message queue full", status)
    if status in INVALID_ADDRESS_STATUSES:
        return SessionError(ErrorKind.SUBMIT_FAILED, "invalid address", status)
    return SessionError(ErrorKind.SUBMIT_FAILED, "submit error", status)


class ResponseClassifier:
    """
    Classifies responses and owns the server-throttle cool-down.

    Args:
        cooldown: Seconds to reject submissions after the peer throttles us
    """

    def __init__(self, cooldown: float = DEFAULT_COOLDOWN):
        self.cooldown = cooldown
        self._handle: asyncio.TimerHandle | None = None

    @property
    def throttled(self) -> bool:
        return self._handle is not None

    def classify(self, status: int) -> SessionError | None:
        logger.debug(f"Response status {status_name(status)} ({status})")
        error = classify_status(status)
        if error is not None and error.kind is ErrorKind.SERVER_THROTTLE:
            self.enter_cooldown()
        return error

    def enter_cooldown(self) -> None:
        """Start (or restart) the cool-down window."""
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.cooldown, self._leave_cooldown)
        logger.warning(f"Server throttle, pausing submissions for {self.cooldown:.0f}s")

    def _leave_cooldown(self) -> None:
        self._handle = None
        logger.info("Server throttle cool-down elapsed")

    def clear(self) -> None:
        """Drop the cool-down immediately."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
