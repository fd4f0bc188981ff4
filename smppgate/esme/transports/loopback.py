"""
In-process loopback SMSC.

LoopbackPeer plays the message center: it checks bind credentials,
throttles submit_sm with its own token bucket, answers with random message
ids and can be told to drop enquire_link responses. LoopbackTransport is
the SmppTransport a session talks to; the peer hands out one per connect.

Useful for local runs without an SMSC and for exercising reconnect and
keepalive paths deterministically.

Example:
    peer = LoopbackPeer(system_id="gateway", password="secret")
    session = Session(config, transport_factory=peer.transport)
    session.connect()
"""

from __future__ import annotations

import asyncio
import logging
import random
import secrets
from collections.abc import Mapping
from typing import Any

from smppgate.esme.constants import SMPP_VERSION_3_4, CommandStatus
from smppgate.esme.ratelimit import TokenBucket
from smppgate.esme.udh import decode_udh

from .protocol import InboundPdu, PduResponse, TransportListener

logger = logging.getLogger(__name__)


class LoopbackPeer:
    """
    Simulated SMSC shared by every LoopbackTransport it creates.

    Args:
        system_id: Accepted bind system_id
        password: Accepted bind password
        throttle: (count, period seconds) accepted submissions, or None
        enquire_link_drop_rate: Probability of never answering an enquire_link
        latency: Seconds each request takes
        seed: Seed for the drop decisions
    """

    def __init__(
        self,
        system_id: str = "smppgate",
        password: str = "secret",
        *,
        throttle: tuple[int, float] | None = None,
        enquire_link_drop_rate: float = 0.0,
        latency: float = 0.0,
        seed: int | None = None,
        peer_system_id: str = "loopback",
    ):
        self.system_id = system_id
        self.password = password
        self.enquire_link_drop_rate = enquire_link_drop_rate
        self.latency = latency
        self.peer_system_id = peer_system_id
        self.refuse_connections = False
        self._bucket = TokenBucket.full(*throttle) if throttle else None
        self._random = random.Random(seed)

        self.transports: list[LoopbackTransport] = []
        self.submitted: list[dict[str, Any]] = []
        self.responses: list[tuple[InboundPdu, dict[str, Any]]] = []
        self._sequence = 0

    def transport(self) -> LoopbackTransport:
        """Transport factory for Session."""
        transport = LoopbackTransport(self)
        self.transports.append(transport)
        return transport

    @property
    def current(self) -> LoopbackTransport | None:
        """Most recent open transport."""
        for transport in reversed(self.transports):
            if transport.is_open:
                return transport
        return None

    def next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    # =========================================================================
    # Request handling
    # =========================================================================

    def handle_bind(self, params: Mapping[str, Any]) -> PduResponse:
        if params.get("system_id") != self.system_id:
            logger.info(f"Loopback rejects bind: unknown system_id {params.get('system_id')!r}")
            return PduResponse(command_status=CommandStatus.ESME_RINVSYSID)
        if params.get("password") != self.password:
            logger.info("Loopback rejects bind: bad password")
            return PduResponse(command_status=CommandStatus.ESME_RINVPASWD)
        return PduResponse(
            fields={
                "system_id": self.peer_system_id,
                "sc_interface_version": SMPP_VERSION_3_4,
            }
        )

    def handle_submit(self, params: Mapping[str, Any]) -> PduResponse:
        if self._bucket is not None and not self._bucket.consume():
            return PduResponse(command_status=CommandStatus.ESME_RTHROTTLED)
        if not params.get("destination_addr"):
            return PduResponse(command_status=CommandStatus.ESME_RINVDSTADR)
        short_message = params.get("short_message")
        udh = getattr(short_message, "udh", None)
        if udh is not None:
            try:
                elements = decode_udh(udh)
            except ValueError as e:
                logger.info(f"Loopback rejects submit_sm: {e}")
                return PduResponse(command_status=CommandStatus.ESME_RINVESMCLASS)
            logger.debug(f"Loopback UDH elements: {sorted(elements)}")
        self.submitted.append(dict(params))
        return PduResponse(message_id=secrets.token_hex(8))

    def drops_enquire_link(self) -> bool:
        return self.enquire_link_drop_rate > 0 and (
            self._random.random() < self.enquire_link_drop_rate
        )

    # =========================================================================
    # Peer-initiated traffic
    # =========================================================================

    def deliver(self, fields: Mapping[str, Any], command: str = "deliver_sm") -> InboundPdu:
        """Push a deliver_sm (or data_sm) to the current connection."""
        transport = self.current
        if transport is None:
            raise ConnectionError("no open loopback connection")
        pdu = InboundPdu(command=command, sequence_number=self.next_sequence(), fields=dict(fields))
        transport.push(pdu)
        return pdu

    def disconnect(self) -> None:
        """Drop the current connection from the peer side."""
        transport = self.current
        if transport is not None:
            transport.drop()


class LoopbackTransport:
    """One connection to a LoopbackPeer."""

    def __init__(self, peer: LoopbackPeer):
        self._peer = peer
        self._listener: TransportListener | None = None
        self._open = False
        self._closed = asyncio.Event()
        self.requests: list[str] = []

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self, host: str, port: int, listener: TransportListener) -> None:
        self._listener = listener
        logger.debug(f"Loopback connect to {host}:{port}")
        asyncio.get_running_loop().call_soon(self._connected)

    def _connected(self) -> None:
        if self._listener is None or self._closed.is_set():
            return
        if self._peer.refuse_connections:
            self._closed.set()
            self._listener.on_error(ConnectionRefusedError("loopback peer refused connection"))
            self._listener.on_close()
            return
        self._open = True
        self._listener.on_connect()

    async def _roundtrip(self, command: str) -> None:
        if not self._open:
            raise ConnectionError(f"{command}: not connected")
        self.requests.append(command)
        logger.debug(f"Loopback {command}")
        if self._peer.latency:
            await asyncio.sleep(self._peer.latency)
        if not self._open:
            raise ConnectionError(f"{command}: connection closed")

    async def bind_transceiver(self, params: Mapping[str, Any]) -> PduResponse:
        await self._roundtrip("bind_transceiver")
        return self._peer.handle_bind(params)

    async def submit_sm(self, params: Mapping[str, Any]) -> PduResponse:
        await self._roundtrip("submit_sm")
        return self._peer.handle_submit(params)

    async def enquire_link(self) -> PduResponse:
        await self._roundtrip("enquire_link")
        if self._peer.drops_enquire_link():
            logger.debug("Loopback drops enquire_link")
            await self._closed.wait()
            raise ConnectionError("enquire_link: connection closed")
        return PduResponse()

    async def unbind(self) -> PduResponse:
        await self._roundtrip("unbind")
        return PduResponse()

    async def close(self) -> None:
        self.drop()

    async def send_response(
        self,
        pdu: InboundPdu,
        params: Mapping[str, Any] | None = None,
    ) -> None:
        if not self._open:
            raise ConnectionError(f"{pdu.command}_resp: not connected")
        self._peer.responses.append((pdu, dict(params or {})))

    def push(self, pdu: InboundPdu) -> None:
        if self._open and self._listener is not None:
            self._listener.on_pdu(pdu)

    def drop(self) -> None:
        """Close the connection; on_close is delivered on the next loop pass."""
        if self._closed.is_set():
            return
        was_open = self._open
        self._open = False
        self._closed.set()
        if self._listener is not None and was_open:
            asyncio.get_running_loop().call_soon(self._listener.on_close)
