"""
ESME session manager.

One long-lived SMPP transceiver session with keepalive, reconnect backoff,
client and server throttling, and an awaitable submit().

Example:
    from smppgate.esme import Session
    from smppgate.esme.transports import LoopbackPeer

    peer = LoopbackPeer()
    session = Session(config, transport_factory=peer.transport)
    session.connect()
    await session.wait_bound()
    message_id = await session.submit({"destination": "123", "content": "hi"})
"""

from .classifier import ResponseClassifier, classify_status
from .constants import CommandStatus, DataCoding, RegisteredDelivery, status_name
from .encoder import delivery_flags, encode
from .errors import ErrorKind, SessionError
from .events import EventDispatcher, LifecycleEvent, SessionEvent, SessionObserver
from .keepalive import KeepaliveWatchdog
from .message import (
    Concatenation,
    DeliveryReport,
    Encoding,
    OutboundMessage,
    PortAddressing,
    UserDataHeader,
    parse_message,
)
from .observability import SessionMetrics
from .ratelimit import ThrottleGate, TokenBucket
from .retry import BackoffStrategy, ReconnectBackoff, StepBackoff
from .session import Session
from .state import InvalidTransition, SessionState
from .udh import encode_udh

__all__ = [
    # Session
    "Session",
    "SessionState",
    "InvalidTransition",
    # Errors
    "ErrorKind",
    "SessionError",
    # Messages
    "OutboundMessage",
    "DeliveryReport",
    "Encoding",
    "PortAddressing",
    "Concatenation",
    "UserDataHeader",
    "parse_message",
    "encode",
    "delivery_flags",
    "encode_udh",
    # Components
    "ResponseClassifier",
    "classify_status",
    "ThrottleGate",
    "TokenBucket",
    "KeepaliveWatchdog",
    "BackoffStrategy",
    "StepBackoff",
    "ReconnectBackoff",
    # Events
    "EventDispatcher",
    "LifecycleEvent",
    "SessionEvent",
    "SessionObserver",
    "SessionMetrics",
    # Constants
    "CommandStatus",
    "DataCoding",
    "RegisteredDelivery",
    "status_name",
]
