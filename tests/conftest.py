"""
Pytest configuration and fixtures for smppgate tests.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

# Add the repository root to path for imports
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from smppgate.config import SessionConfig  # noqa: E402
from smppgate.esme.events import LifecycleEvent, SessionEvent  # noqa: E402
from smppgate.esme.transports.protocol import InboundPdu, PduResponse  # noqa: E402

HANG = object()
"""Script value: the request never resolves."""


class FakeTransport:
    """
    Scriptable SmppTransport.

    Responses are taken from the attributes below. A value may be a
    PduResponse, an Exception (raised) or HANG (never answered).
    """

    def __init__(self) -> None:
        self.listener: Any = None
        self.address: tuple[str, int] | None = None
        self.auto_connect = True
        self.calls: list[tuple[str, Any]] = []
        self.responses: list[tuple[InboundPdu, Any]] = []
        self.closed = False
        self.close_hangs = False

        self.bind_response: Any = PduResponse(
            fields={"system_id": "SMSC", "sc_interface_version": 0x34}
        )
        self.submit_responses: list[Any] = []
        self.enquire_link_response: Any = PduResponse()
        self.unbind_response: Any = PduResponse()

    # SmppTransport -------------------------------------------------------

    def open(self, host: str, port: int, listener: Any) -> None:
        self.address = (host, port)
        self.listener = listener
        if self.auto_connect:
            asyncio.get_running_loop().call_soon(listener.on_connect)

    async def _answer(self, command: str, script: Any, params: Any = None) -> PduResponse:
        self.calls.append((command, params))
        if script is HANG:
            await asyncio.get_running_loop().create_future()
        if isinstance(script, Exception):
            raise script
        return script

    async def bind_transceiver(self, params: Mapping[str, Any]) -> PduResponse:
        return await self._answer("bind_transceiver", self.bind_response, dict(params))

    async def submit_sm(self, params: Mapping[str, Any]) -> PduResponse:
        if self.submit_responses:
            script = self.submit_responses.pop(0)
        else:
            script = PduResponse(message_id=f"id-{len(self.submitted) + 1}")
        return await self._answer("submit_sm", script, dict(params))

    async def enquire_link(self) -> PduResponse:
        return await self._answer("enquire_link", self.enquire_link_response)

    async def unbind(self) -> PduResponse:
        return await self._answer("unbind", self.unbind_response)

    async def close(self) -> None:
        self.calls.append(("close", None))
        if self.close_hangs:
            await asyncio.get_running_loop().create_future()
        if not self.closed:
            self.closed = True
            asyncio.get_running_loop().call_soon(self.listener.on_close)

    async def send_response(self, pdu: InboundPdu, params: Mapping[str, Any] | None = None) -> None:
        self.responses.append((pdu, dict(params) if params is not None else None))

    # Peer-side helpers ---------------------------------------------------

    def count(self, command: str) -> int:
        return sum(1 for name, _ in self.calls if name == command)

    @property
    def submitted(self) -> list[dict[str, Any]]:
        return [params for name, params in self.calls if name == "submit_sm"]

    def connect_now(self) -> None:
        self.listener.on_connect()

    def drop(self) -> None:
        self.closed = True
        self.listener.on_close()

    def fail(self, exc: Exception) -> None:
        self.listener.on_error(exc)

    def push(self, command: str, **fields: Any) -> InboundPdu:
        pdu = InboundPdu(command=command, sequence_number=7, fields=fields)
        self.listener.on_pdu(pdu)
        return pdu


class FakeTransportFactory:
    """Transport factory recording every transport it hands out."""

    def __init__(self) -> None:
        self.transports: list[FakeTransport] = []
        self.setup: Any = None

    def __call__(self) -> FakeTransport:
        transport = FakeTransport()
        if self.setup is not None:
            self.setup(transport)
        self.transports.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.transports[-1]


class EventRecorder:
    """SessionObserver that keeps every event."""

    def __init__(self) -> None:
        self.events: list[SessionEvent] = []

    def on_event(self, event: SessionEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [event.kind.value for event in self.events]

    def of(self, kind: LifecycleEvent) -> list[SessionEvent]:
        return [event for event in self.events if event.kind is kind]


async def settle(rounds: int = 5) -> None:
    """Let callbacks and spawned tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def fast_config() -> SessionConfig:
    """Session config with millisecond timers for timing tests."""
    return SessionConfig(
        bind={"system_id": "gateway", "password": "secret"},
        submit={"source_addr": "12345"},
        timeouts={
            "reconnect": 20,
            "reconnect_long": 40,
            "ping": 30,
            "activity": 50,
            "unbind": 50,
            "throttle_cooldown": 100,
        },
    )


@pytest.fixture
def default_config() -> SessionConfig:
    """Session config with production timer defaults."""
    return SessionConfig(
        bind={"system_id": "gateway", "password": "secret"},
        timeouts={"reconnect": 3000, "ping": 3000, "activity": 60000},
    )


@pytest.fixture
def sample_message() -> dict[str, Any]:
    return {"destination": "4915112345678", "content": "hello"}


async def eventually(predicate: Any, timeout: float = 1.0, interval: float = 0.005) -> None:
    """Poll until predicate() is true or fail after timeout seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)
