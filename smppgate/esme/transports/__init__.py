"""
SMPP transports for the ESME session.

The session depends only on the SmppTransport protocol. LoopbackTransport
is an in-process peer for local runs and tests.
"""

from .loopback import LoopbackPeer, LoopbackTransport
from .protocol import (
    InboundPdu,
    PduResponse,
    ShortMessage,
    SmppTransport,
    TransportFactory,
    TransportListener,
)

__all__ = [
    "InboundPdu",
    "LoopbackPeer",
    "LoopbackTransport",
    "PduResponse",
    "ShortMessage",
    "SmppTransport",
    "TransportFactory",
    "TransportListener",
]
