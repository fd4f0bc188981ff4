"""
smppgate - SMPP gateway

FastAPI application entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from smppgate import __version__
from smppgate.app.api import send_router
from smppgate.app.dependencies import (
    get_metrics,
    get_session,
    get_settings,
    initialize_services,
    shutdown_services,
)
from smppgate.esme import SessionState

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Connects the session at startup and stops it at shutdown.
    """
    # Startup
    logger.info("Starting smppgate...")
    try:
        await initialize_services()
    except Exception as e:
        logger.error(f"Failed to start session: {e}", exc_info=True)
        raise

    yield

    # Shutdown
    logger.info("Shutting down smppgate...")
    try:
        await shutdown_services()
        logger.info("smppgate shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


def create_app() -> FastAPI:
    app = FastAPI(
        title="smppgate",
        description="HTTP to SMPP gateway",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(send_router)

    @app.get("/metrics", tags=["health"])
    async def metrics() -> Response:
        """Lifecycle counters in the Prometheus text format."""
        return Response(content=get_metrics().render(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, Any]:
        """Session state, flags and remaining client throttle tokens."""
        session = get_session()
        stats = session.get_stats()
        return {
            "status": "healthy" if session.state is SessionState.BOUND else "degraded",
            **stats,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "smppgate.app.main:app",
        host=settings.http_host,
        port=settings.http_port,
    )
