"""
ESME session state machine.

One long-lived transceiver session to an SMSC. The session owns the
connection and bind state and composes the keepalive watchdog, reconnect
backoff, throttle gate, message encoder and response classifier behind a
single awaitable submit().

Design:
    Everything runs on one event loop. Transport callbacks arrive through a
    per-transport listener, so events from a connection the session has
    already abandoned are ignored. Every request to the transport goes
    through a pending-call registry; a close, an error or stop() fails all
    outstanding waiters with ErrorKind.UNKNOWN, so no caller waits forever.

Example:
    session = Session(config, transport_factory)
    session.subscribe(metrics)
    session.connect()
    await session.wait_bound(timeout=10)
    message_id = await session.submit({"destination": "4915112345678", "content": "hi"})
    await session.stop()
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from .classifier import ResponseClassifier
from .constants import CommandStatus
from .encoder import encode
from .errors import ErrorKind, SessionError
from .events import EventDispatcher, LifecycleEvent, SessionEvent, SessionObserver
from .keepalive import KeepaliveWatchdog
from .message import OutboundMessage, parse_message
from .ratelimit import ThrottleGate
from .retry import BackoffStrategy, ReconnectBackoff, StepBackoff
from .state import SessionState, check_transition, is_connected

if TYPE_CHECKING:
    from collections.abc import Awaitable, Coroutine, Mapping

    from smppgate.config.schemas import SessionConfig

    from .transports.protocol import InboundPdu, PduResponse, SmppTransport, TransportFactory

logger = logging.getLogger(__name__)

DELIVERY_COMMANDS = frozenset({"deliver_sm", "data_sm"})


def _seconds(ms: int) -> float:
    return ms / 1000.0


class _SessionListener:
    """Routes one transport's callbacks to the session, tagged with the transport."""

    def __init__(self, session: Session, transport: SmppTransport):
        self._session = session
        self._transport = transport

    def on_connect(self) -> None:
        self._session._on_transport_connect(self._transport)

    def on_close(self) -> None:
        self._session._on_transport_close(self._transport)

    def on_error(self, exc: Exception) -> None:
        self._session._on_transport_error(self._transport, exc)

    def on_pdu(self, pdu: InboundPdu) -> None:
        self._session._on_transport_pdu(self._transport, pdu)


class Session:
    """
    ESME transceiver session.

    Args:
        config: Frozen session configuration
        transport_factory: Returns a fresh transport for every connect()
        backoff: Reconnect delay policy (defaults to StepBackoff built from
            timeouts.reconnect and timeouts.reconnect_long)
    """

    def __init__(
        self,
        config: SessionConfig,
        transport_factory: TransportFactory,
        *,
        backoff: BackoffStrategy | None = None,
    ):
        self.config = config
        self._factory = transport_factory
        timeouts = config.timeouts

        self._state = SessionState.IDLE
        self._stopped = False
        self._transport: SmppTransport | None = None
        self._peer_system_id: str | None = None
        self._peer_interface_version: int | None = None

        self._events = EventDispatcher()
        if config.throttle is not None:
            self._gate = ThrottleGate(
                capacity=config.throttle.count,
                period=_seconds(config.throttle.period),
            )
        else:
            self._gate = ThrottleGate()
        self._backoff = ReconnectBackoff(
            backoff
            or StepBackoff(
                initial=_seconds(timeouts.reconnect),
                subsequent=_seconds(timeouts.reconnect_long),
            ),
            on_ready=self._on_reconnect_due,
        )
        self._watchdog = KeepaliveWatchdog(
            heartbeat=self._heartbeat,
            on_timeout=self._on_keepalive_timeout,
            interval=_seconds(timeouts.activity),
            deadline=_seconds(timeouts.ping),
        )
        self._classifier = ResponseClassifier(cooldown=_seconds(timeouts.throttle_cooldown))

        self._pending: set[asyncio.Future[PduResponse]] = set()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._bound = asyncio.Event()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def throttled(self) -> bool:
        """True while the peer-imposed cool-down is active."""
        return self._classifier.throttled

    @property
    def pinging(self) -> bool:
        """True while an enquire_link awaits its response."""
        return self._watchdog.pinging

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def peer_system_id(self) -> str | None:
        return self._peer_system_id

    @property
    def peer_interface_version(self) -> int | None:
        return self._peer_interface_version

    @property
    def reconnect_failures(self) -> int:
        return self._backoff.failures

    @property
    def gate(self) -> ThrottleGate:
        return self._gate

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, observer: SessionObserver) -> None:
        self._events.subscribe(observer)

    def unsubscribe(self, observer: SessionObserver) -> bool:
        return self._events.unsubscribe(observer)

    def _emit(
        self,
        kind: LifecycleEvent,
        error: ErrorKind | None = None,
        **data: Any,
    ) -> None:
        self._events.emit(SessionEvent(kind=kind, error=error, data=data))

    def _emit_error(self, error: SessionError) -> None:
        self._emit(
            LifecycleEvent.ERROR,
            error=error.kind,
            detail=error.detail,
            status=error.status,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def connect(self) -> bool:
        """
        Open a new transport and start connecting.

        Only acts from IDLE, or from RECONNECTING when no reconnect is
        pending; anything else is a no-op.

        Returns:
            True if a connection attempt was started
        """
        if self._state is SessionState.RECONNECTING:
            if self._backoff.pending:
                logger.debug("connect() ignored, reconnect already scheduled")
                return False
        elif self._state is not SessionState.IDLE:
            logger.debug(f"connect() ignored in state {self._state.value}")
            return False

        self._stopped = False
        self._set_state(SessionState.CONNECTING)
        transport = self._factory()
        self._transport = transport
        connection = self.config.connection
        logger.info(f"Connecting to {connection.url}")
        self._emit(LifecycleEvent.CONNECTING, host=connection.host, port=connection.port)

        try:
            transport.open(connection.host, connection.port, _SessionListener(self, transport))
        except Exception as e:
            self._on_transport_error(transport, e)
        return True

    async def bind(self) -> bool:
        """
        Send bind_transceiver on the current connection.

        Only acts from CONNECTED. A rejected bind closes the connection
        and schedules a reconnect; it is never retried in place.

        Returns:
            True once the session is BOUND
        """
        if self._state is not SessionState.CONNECTED or self._transport is None:
            logger.debug(f"bind() ignored in state {self._state.value}")
            return False

        transport = self._transport
        bind = self.config.bind
        self._set_state(SessionState.BINDING)
        logger.info(f"Binding as {bind.system_id!r}")
        self._emit(LifecycleEvent.BINDING, system_id=bind.system_id)

        try:
            response = await self._request(transport.bind_transceiver(bind.as_params()))
        except SessionError as e:
            # The connection went away; the close path already rescheduled
            logger.warning(f"Bind interrupted: {e}")
            return False
        except Exception as e:
            if transport is not self._transport:
                return False
            error = SessionError(ErrorKind.BIND_FAILED, f"bind error: {e}")
            logger.error(f"Bind failed: {error}")
            self._emit_error(error)
            self._abandon(transport)
            return False

        if transport is not self._transport or self._state is not SessionState.BINDING:
            return False

        if not response.ok:
            error = SessionError(ErrorKind.BIND_FAILED, "bind failed", response.command_status)
            logger.error(f"Bind failed: {error}")
            self._emit_error(error)
            self._abandon(transport)
            return False

        self._peer_system_id = response.fields.get("system_id")
        self._peer_interface_version = response.fields.get("sc_interface_version")
        self._set_state(SessionState.BOUND)
        self._backoff.reset()
        self._watchdog.touch()
        self._bound.set()
        logger.info(
            f"Bound to {self._peer_system_id or 'peer'}"
            + (
                f" (interface 0x{self._peer_interface_version:02X})"
                if self._peer_interface_version is not None
                else ""
            )
        )
        self._emit(
            LifecycleEvent.BOUND,
            system_id=self._peer_system_id,
            interface_version=self._peer_interface_version,
        )
        self._emit(LifecycleEvent.READY)
        return True

    async def wait_bound(self, timeout: float | None = None) -> bool:
        """Wait until the session is BOUND; False on timeout."""
        if self._state is SessionState.BOUND:
            return True
        try:
            await asyncio.wait_for(self._bound.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return self._state is SessionState.BOUND

    async def stop(self, deadline: float | None = None) -> None:
        """
        Shut the session down.

        Unbinds (best effort, bounded by timeouts.unbind) when BOUND, closes
        the connection (also bounded by timeouts.unbind), cancels every
        timer and fails pending calls with UNKNOWN. Safe in any state.

        Args:
            deadline: Upper bound in seconds for the whole teardown
        """
        logger.info(f"Stopping session (state={self._state.value})")
        self._stopped = True
        self._backoff.cancel()

        try:
            await asyncio.wait_for(self._teardown(), timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning(f"Session teardown exceeded {deadline}s, abandoning connection")

        self._watchdog.cancel()
        self._classifier.clear()
        self._bound.clear()
        self._fail_pending("session stopped")
        self._transport = None

        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()

        if self._state is not SessionState.IDLE:
            self._set_state(SessionState.IDLE)
        logger.info("Session stopped")

    async def _teardown(self) -> None:
        transport = self._transport
        if transport is None:
            return

        if self._state is SessionState.BOUND:
            try:
                await asyncio.wait_for(
                    self._request(transport.unbind()),
                    timeout=_seconds(self.config.timeouts.unbind),
                )
                logger.info("Unbound")
            except asyncio.TimeoutError:
                logger.warning("Unbind timed out")
            except Exception as e:
                logger.warning(f"Unbind failed: {e}")

        if transport is self._transport:
            self._connection_lost(transport)
            try:
                await asyncio.wait_for(
                    self._close_transport(transport),
                    timeout=_seconds(self.config.timeouts.unbind),
                )
            except asyncio.TimeoutError:
                logger.warning("Transport close timed out, abandoning connection")

    # =========================================================================
    # Submit
    # =========================================================================

    async def submit(self, message: OutboundMessage | Mapping[str, Any]) -> str:
        """
        Submit one message.

        Checks, in order: bound, server cool-down, message validity, client
        throttle. Nothing reaches the transport unless all pass.

        Returns:
            The peer's message id ("" if it sent none)

        Raises:
            SessionError: UNBOUND, SERVER_THROTTLE, VALIDATION, CLIENT_THROTTLE,
                SUBMIT_FAILED or UNKNOWN
        """
        try:
            return await self._submit(message)
        except SessionError as e:
            self._emit_error(e)
            raise

    async def _submit(self, message: OutboundMessage | Mapping[str, Any]) -> str:
        if self._state is not SessionState.BOUND:
            raise SessionError(ErrorKind.UNBOUND, "session not bound")
        if self._classifier.throttled:
            raise SessionError(ErrorKind.SERVER_THROTTLE, "server throttle active")

        outbound = parse_message(message)

        if not await self._gate.reserve():
            raise SessionError(ErrorKind.CLIENT_THROTTLE, "client throttle triggered")

        transport = self._transport
        if self._state is not SessionState.BOUND or transport is None:
            raise SessionError(ErrorKind.UNBOUND, "session not bound")

        params = encode(outbound, self.config.submit.as_params())
        logger.debug(f"submit_sm to {outbound.destination} ({outbound.encoding.value})")
        self._emit(LifecycleEvent.SEND, destination=outbound.destination)

        try:
            response = await self._request(transport.submit_sm(params))
        except SessionError:
            raise
        except Exception as e:
            logger.warning(f"submit_sm dispatch failed: {e}")
            raise SessionError(ErrorKind.SUBMIT_FAILED, "submit error") from e

        error = self._classifier.classify(response.command_status)
        if error is not None:
            logger.warning(f"submit_sm rejected: {error}")
            raise error

        if self._state is SessionState.BOUND:
            self._watchdog.touch()
        logger.debug(f"submit_sm accepted, message_id={response.message_id}")
        return response.message_id or ""

    # =========================================================================
    # Transport events
    # =========================================================================

    def _on_transport_connect(self, transport: SmppTransport) -> None:
        if transport is not self._transport:
            logger.debug("Ignoring connect from a stale transport")
            return
        if self._state is not SessionState.CONNECTING:
            logger.debug(f"Ignoring connect in state {self._state.value}")
            return
        self._set_state(SessionState.CONNECTED)
        logger.info("Connected")
        self._emit(LifecycleEvent.CONNECT)
        self._spawn(self.bind())

    def _on_transport_close(self, transport: SmppTransport) -> None:
        if transport is not self._transport:
            logger.debug("Ignoring close from a stale transport")
            return
        if not self._stopped:
            logger.warning(f"Connection closed unexpectedly (state={self._state.value})")
        self._connection_lost(transport)

    def _on_transport_error(self, transport: SmppTransport, exc: Exception) -> None:
        if transport is not self._transport:
            logger.debug(f"Ignoring error from a stale transport: {exc}")
            return
        logger.warning(f"Transport error: {exc}")
        self._emit(LifecycleEvent.ERROR, error=ErrorKind.UNKNOWN, detail=str(exc))
        self._abandon(transport)

    def _on_transport_pdu(self, transport: SmppTransport, pdu: InboundPdu) -> None:
        if transport is not self._transport:
            logger.debug(f"Ignoring {pdu.command} from a stale transport")
            return

        logger.debug(f"Received {pdu.command} seq={pdu.sequence_number}")
        if pdu.command in DELIVERY_COMMANDS:
            receipted = pdu.receipted_message_id
            params = {"message_id": receipted} if receipted else None
            self._spawn(self._respond(transport, pdu, params))
            if self._state is SessionState.BOUND:
                self._watchdog.touch()
            self._emit(LifecycleEvent.MESSAGE, pdu=pdu)
        elif pdu.command == "enquire_link":
            self._spawn(self._respond(transport, pdu))
        elif pdu.command == "unbind":
            logger.info("Peer requested unbind")
            self._spawn(self._respond_and_close(transport, pdu))
        else:
            logger.debug(f"Unhandled PDU {pdu.command}")

    async def _respond(
        self,
        transport: SmppTransport,
        pdu: InboundPdu,
        params: Mapping[str, Any] | None = None,
    ) -> None:
        try:
            await transport.send_response(pdu, params)
        except Exception as e:
            logger.warning(f"Failed to answer {pdu.command}: {e}")

    async def _respond_and_close(self, transport: SmppTransport, pdu: InboundPdu) -> None:
        await self._respond(transport, pdu)
        if transport is self._transport:
            self._abandon(transport)

    # =========================================================================
    # Keepalive and reconnect
    # =========================================================================

    async def _heartbeat(self) -> PduResponse:
        transport = self._transport
        if transport is None:
            raise SessionError(ErrorKind.UNBOUND, "no connection")
        response = await self._request(transport.enquire_link())
        if response.command_status != CommandStatus.ESME_ROK:
            logger.warning(f"enquire_link answered with status {response.command_status}")
        return response

    def _on_keepalive_timeout(self) -> None:
        transport = self._transport
        if transport is None or self._state is not SessionState.BOUND:
            return
        logger.warning("Peer unresponsive, dropping connection")
        self._abandon(transport)

    def _on_reconnect_due(self) -> None:
        if self._stopped:
            return
        self.connect()

    def _connection_lost(self, transport: SmppTransport) -> None:
        """
        Detach the transport and move to RECONNECTING (or IDLE once stopped).

        Fails every pending call. Safe to call more than once per transport.
        """
        if transport is not self._transport:
            return

        self._transport = None
        self._watchdog.cancel()
        self._classifier.clear()
        self._bound.clear()
        self._fail_pending("connection closed")
        logger.info("Connection closed")
        self._emit(LifecycleEvent.CLOSE)

        if self._stopped:
            if self._state is not SessionState.IDLE:
                self._set_state(SessionState.IDLE)
            return

        self._set_state(SessionState.RECONNECTING)
        delay = self._backoff.schedule()
        if delay is not None:
            self._emit(LifecycleEvent.RECONNECTING, delay=delay)

    def _abandon(self, transport: SmppTransport) -> None:
        """Give up on a connection: reschedule now, close in the background."""
        self._connection_lost(transport)
        self._spawn(self._close_transport(transport))

    async def _close_transport(self, transport: SmppTransport) -> None:
        try:
            await transport.close()
        except Exception as e:
            logger.warning(f"Transport close failed: {e}")

    # =========================================================================
    # Internals
    # =========================================================================

    def _set_state(self, target: SessionState) -> None:
        check_transition(self._state, target)
        logger.debug(f"State {self._state.value} -> {target.value}")
        self._state = target

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Session task failed: {task.exception()!r}")

    async def _request(self, request: Awaitable[PduResponse]) -> PduResponse:
        """
        Await a transport request through the pending-call registry.

        Raises:
            SessionError: UNKNOWN if the connection goes away first
        """
        waiter: asyncio.Future[PduResponse] = asyncio.get_running_loop().create_future()
        self._pending.add(waiter)
        forward = self._spawn(self._forward(request, waiter))
        try:
            return await waiter
        finally:
            self._pending.discard(waiter)
            if waiter.cancelled() and not forward.done():
                forward.cancel()

    @staticmethod
    async def _forward(
        request: Awaitable[PduResponse],
        waiter: asyncio.Future[PduResponse],
    ) -> None:
        try:
            response = await request
        except Exception as e:
            if not waiter.done():
                waiter.set_exception(e)
        else:
            if not waiter.done():
                waiter.set_result(response)

    def _fail_pending(self, detail: str) -> None:
        pending = list(self._pending)
        self._pending.clear()
        for waiter in pending:
            if not waiter.done():
                waiter.set_exception(SessionError(ErrorKind.UNKNOWN, detail))
        if pending:
            logger.debug(f"Failed {len(pending)} pending call(s): {detail}")

    def get_stats(self) -> dict[str, Any]:
        """Snapshot for health endpoints."""
        return {
            "state": self._state.value,
            "connected": is_connected(self._state),
            "throttled": self.throttled,
            "pinging": self.pinging,
            "stopped": self._stopped,
            "peer_system_id": self._peer_system_id,
            "reconnect": self._backoff.get_stats(),
            "throttle": {
                **self._gate.get_config(),
                "remaining": self._gate.remaining(),
            },
        }
