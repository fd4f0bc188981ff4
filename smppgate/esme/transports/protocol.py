"""
Transport Protocol for the ESME session.

Defines the interface the session expects from an SMPP transport. The
transport owns PDU framing and the socket; the session owns everything
above it (bind sequencing, keepalive, throttling, reconnects).

A transport instance represents one connection attempt. The session asks
its factory for a fresh instance on every connect().
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class ShortMessage:
    """
    submit_sm payload.

    Attributes:
        message: Text (encoded by the transport per data_coding) or raw bytes
        udh: Encoded user data header, sent ahead of the message
    """

    message: str | bytes
    udh: bytes | None = None


@dataclass(frozen=True, slots=True)
class PduResponse:
    """
    Response PDU delivered to a pending request.

    Attributes:
        command_status: SMPP command_status (0 = ESME_ROK)
        message_id: Identifier returned by submit_sm_resp
        fields: Any other response fields (system_id, sc_interface_version, ...)
    """

    command_status: int = 0
    message_id: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.command_status == 0


@dataclass(frozen=True, slots=True)
class InboundPdu:
    """
    Unsolicited PDU from the peer (deliver_sm, data_sm, enquire_link).

    Attributes:
        command: PDU command name
        sequence_number: Sequence number to echo in the response
        fields: Decoded body fields
    """

    command: str
    sequence_number: int = 0
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def receipted_message_id(self) -> str | None:
        return self.fields.get("receipted_message_id")


class TransportListener(Protocol):
    """Callbacks a transport invokes for connection events."""

    def on_connect(self) -> None:
        """The connection is established."""
        ...

    def on_close(self) -> None:
        """The connection is gone (requested or not)."""
        ...

    def on_error(self, exc: Exception) -> None:
        """A socket or framing error occurred; on_close usually follows."""
        ...

    def on_pdu(self, pdu: InboundPdu) -> None:
        """An unsolicited PDU arrived."""
        ...


@runtime_checkable
class SmppTransport(Protocol):
    """
    One SMPP connection.

    open() is non-blocking: it starts connecting and reports the outcome
    through the listener. Request methods resolve with the matching
    response PDU; a connection that drops while a request is outstanding
    either raises or never resolves, and the session copes with both.
    """

    def open(self, host: str, port: int, listener: TransportListener) -> None:
        """Start connecting to host:port."""
        ...

    async def bind_transceiver(self, params: Mapping[str, Any]) -> PduResponse:
        """Send bind_transceiver."""
        ...

    async def submit_sm(self, params: Mapping[str, Any]) -> PduResponse:
        """Send submit_sm."""
        ...

    async def enquire_link(self) -> PduResponse:
        """Send enquire_link."""
        ...

    async def unbind(self) -> PduResponse:
        """Send unbind."""
        ...

    async def close(self) -> None:
        """Close the connection; on_close fires once it is down."""
        ...

    async def send_response(
        self,
        pdu: InboundPdu,
        params: Mapping[str, Any] | None = None,
    ) -> None:
        """Send the response PDU for an unsolicited request."""
        ...


TransportFactory = Callable[[], SmppTransport]
