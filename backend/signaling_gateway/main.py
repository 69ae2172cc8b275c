"""
Signaling Gateway main application.

Relays WebRTC negotiation messages (offers, answers, ICE candidates)
between peers that join the same numeric channel over WebSocket.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request, WebSocket

from shared.config.settings import settings
from shared.config.logging import setup_logging, ws_gateway_logger as logger
from signaling_gateway.components.endpoints.base import SignalingEndpoint, request_target
from signaling_gateway.relay import SignalingRelay


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Configures logging on startup and closes every open connection on
    shutdown.
    """
    setup_logging()
    for problem in settings.validate_production_settings():
        logger.warning("Configuration problem", problem=problem)
    logger.info(
        "Starting Signaling Gateway",
        port=settings.ws_gateway_port,
        env=settings.environment,
    )

    yield

    logger.info("Shutting down Signaling Gateway")
    await app.state.relay.shutdown()


# =============================================================================
# Routes
# =============================================================================

router = APIRouter()


@router.get("/")
def liveness_probe(request: Request):
    """Liveness probe: always 200 with an empty list."""
    logger.info(
        "Liveness probe",
        client=request.client.host if request.client else None,
    )
    return []


@router.get("/stats")
def relay_stats(request: Request):
    """Connection and routing statistics."""
    return request.app.state.relay.get_stats()


@router.websocket("/{channel:path}")
async def signaling_websocket(websocket: WebSocket, channel: str):
    """
    WebSocket endpoint for peers.

    The request target names the channel to join, e.g. ``/42``. It is
    validated as sent, query string included.
    """
    endpoint = SignalingEndpoint(websocket, websocket.app.state.relay, request_target(websocket))
    await endpoint.run()


# =============================================================================
# FastAPI Application
# =============================================================================


def create_app(relay: SignalingRelay | None = None) -> FastAPI:
    """
    Build the gateway application.

    Args:
        relay: Relay state to serve. A fresh SignalingRelay by default.
    """
    application = FastAPI(
        title="Signaling Relay Gateway",
        description="WebRTC signaling relay for peer-to-peer negotiation",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.state.relay = relay if relay is not None else SignalingRelay()
    application.include_router(router)
    return application


app = create_app()


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "signaling_gateway.main:app",
        host=settings.ws_gateway_host,
        port=settings.ws_gateway_port,
        reload=settings.debug,
    )
