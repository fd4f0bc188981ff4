"""
Submit endpoint for smppgate.

Turns a JSON message into Session.submit() and maps SessionError kinds to
HTTP status codes.
"""

from __future__ import annotations

import logging
import math
import secrets
from typing import Any, Optional

from fastapi import APIRouter, Body, Header
from fastapi.responses import JSONResponse

from smppgate.app.dependencies import get_session, get_settings
from smppgate.esme import ErrorKind, SessionError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["send"])

ERROR_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNBOUND: 503,
    ErrorKind.SERVER_THROTTLE: 503,
    ErrorKind.CLIENT_THROTTLE: 503,
}


def status_for(error: SessionError) -> int:
    """HTTP status for a session error (500 unless mapped)."""
    return ERROR_STATUS.get(error.kind, 500)


def _authorized(password: Optional[str]) -> bool:
    expected = get_settings().api_password
    if expected is None or not expected.get_secret_value():
        return True
    if password is None:
        return False
    return secrets.compare_digest(password, expected.get_secret_value())


@router.post("/send")
async def send(
    payload: Any = Body(...),
    x_api_password: Optional[str] = Header(default=None),
) -> JSONResponse:
    """
    Submit one message.

    Body: OutboundMessage as JSON, e.g.
        {"destination": "4915112345678", "content": "hello", "report": {"final": true}}
    """
    if not _authorized(x_api_password):
        logger.warning("Rejected /send with a bad API password")
        return JSONResponse(
            status_code=403,
            content={"success": False, "code": "forbidden", "message": "invalid api password"},
        )

    session = get_session()
    try:
        message_id = await session.submit(payload)
    except SessionError as e:
        status = status_for(e)
        log = logger.warning if status < 500 or e.recoverable else logger.error
        log(f"/send failed: {e}")
        headers = None
        if e.kind is ErrorKind.CLIENT_THROTTLE:
            headers = {"Retry-After": str(max(1, math.ceil(session.gate.retry_after())))}
        return JSONResponse(status_code=status, content=e.to_dict(), headers=headers)

    logger.info(f"/send accepted, message_id={message_id}")
    return JSONResponse(content={"success": True, "message_id": message_id})
