"""
Error taxonomy for the ESME session.

Every failure surfaced by Session.submit() is a SessionError carrying a
machine-readable kind, so the HTTP layer can map it to a status code
without parsing messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from .constants import status_name


class ErrorKind(str, Enum):
    """Classification of session errors for handling decisions."""

    # Caller may retry once the session recovers
    UNBOUND = "unbound"
    SERVER_THROTTLE = "server_throttle"
    CLIENT_THROTTLE = "client_throttle"

    # Rejected before reaching the transport
    VALIDATION = "validation"

    # Peer answered with a failure status
    BIND_FAILED = "bind_failed"
    SUBMIT_FAILED = "submit_failed"

    # Transport went away under a pending call
    UNKNOWN = "unknown"


class SessionError(Exception):
    """
    Raised when a session operation fails.

    Attributes:
        kind: Error classification
        detail: Human-readable description
        status: Raw peer command_status, if the peer answered
    """

    def __init__(
        self,
        kind: ErrorKind,
        detail: str = "",
        status: int | None = None,
    ):
        self.kind = kind
        self.detail = detail or kind.value.replace("_", " ")
        self.status = status
        message = f"{kind.value}: {self.detail}"
        if status is not None:
            message += f" ({status_name(status)})"
        super().__init__(message)

    @property
    def status_name(self) -> str | None:
        """Symbolic peer status, e.g. ESME_RTHROTTLED."""
        if self.status is None:
            return None
        return status_name(self.status)

    @property
    def recoverable(self) -> bool:
        """Whether retrying later may succeed without operator action."""
        return self.kind in {
            ErrorKind.UNBOUND,
            ErrorKind.SERVER_THROTTLE,
            ErrorKind.CLIENT_THROTTLE,
            ErrorKind.UNKNOWN,
        }

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": False,
            "code": self.kind.value,
            "message": self.detail,
        }
        if self.status is not None:
            data["status"] = self.status
            data["status_name"] = self.status_name
        return data
