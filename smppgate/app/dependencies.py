"""
Dependency Injection for smppgate.

Provides the process-wide session, metrics collector and transport factory.
The session is created on first access and connected by the app lifespan.
"""

from __future__ import annotations

import logging
from typing import Optional

from smppgate.config import GatewaySettings, load_settings
from smppgate.esme import Session, SessionMetrics
from smppgate.esme.transports import LoopbackPeer, TransportFactory

logger = logging.getLogger(__name__)

# Seconds allowed for session teardown at shutdown
SHUTDOWN_DEADLINE = 5.0


def get_settings() -> GatewaySettings:
    """Get gateway settings (cached by load_settings)."""
    return load_settings()


# Global instances (initialized on first access)
_transport_factory: Optional[TransportFactory] = None
_session: Optional[Session] = None
_metrics: Optional[SessionMetrics] = None


def set_transport_factory(factory: TransportFactory) -> None:
    """
    Install the transport used for new sessions.

    Must be called before the session is first created.
    """
    global _transport_factory
    if _session is not None:
        raise RuntimeError("Session already created; set the transport factory first")
    _transport_factory = factory


def get_transport_factory() -> TransportFactory:
    """
    Get the transport factory.

    Defaults to an in-process loopback peer accepting the configured
    credentials.
    """
    global _transport_factory
    if _transport_factory is None:
        settings = get_settings()
        peer = LoopbackPeer(
            system_id=settings.system_id,
            password=settings.password.get_secret_value(),
        )
        logger.warning("No SMPP transport configured, using the loopback peer")
        _transport_factory = peer.transport
    return _transport_factory


def get_metrics() -> SessionMetrics:
    global _metrics
    if _metrics is None:
        _metrics = SessionMetrics()
    return _metrics


def get_session() -> Session:
    """Get the session, creating it (unconnected) on first call."""
    global _session
    if _session is None:
        settings = get_settings()
        _session = Session(settings.session_config(), get_transport_factory())
        _session.subscribe(get_metrics())
        logger.info(f"Session created for {settings.smsc_host}:{settings.smsc_port}")
    return _session


async def initialize_services() -> None:
    """Connect the session; binding continues in the background."""
    session = get_session()
    session.connect()


async def shutdown_services() -> None:
    if _session is not None:
        await _session.stop(deadline=SHUTDOWN_DEADLINE)


def reset_services() -> None:
    """Drop all singletons (tests and reloads)."""
    global _transport_factory, _session, _metrics
    _transport_factory = None
    _session = None
    _metrics = None
    load_settings.cache_clear()
