"""
Signaling Relay.

Thin orchestrator that owns the relay state and composes the components:
- ConnectionRegistry: admitted connections by id
- ConnectionBroadcaster: targeted sends and fan-out
- MessageRouter: frame classification and forwarding
- ConnectionLifecycle: admission, presence, removal

One SignalingRelay is created per application (see main.create_app) and
handed to every endpoint; there is no module-level registry.
"""

from __future__ import annotations

import asyncio
from typing import Any, TYPE_CHECKING

from shared.config.logging import get_logger
from shared.config.settings import settings
from signaling_gateway.components.connection.identifiers import IdentifierGenerator
from signaling_gateway.components.connection.registry import ConnectionRegistry
from signaling_gateway.components.core.constants import WSCloseCode
from signaling_gateway.components.events.router import MessageRouter
from signaling_gateway.core.connection.broadcaster import ConnectionBroadcaster
from signaling_gateway.core.connection.lifecycle import ConnectionLifecycle

if TYPE_CHECKING:
    from signaling_gateway.components.connection.registry import Connection, OutboundChannel
    from signaling_gateway.components.events.router import RoutingResult

logger = get_logger(__name__)


class SignalingRelay:
    """
    Entry point the transport layer calls on connect, message and close.

    Configuration from settings:
    - relay_id_length: Initial connection id width (default: 2)
    - relay_id_attempts_per_length: Collisions tolerated before widening (default: 16)
    - ws_broadcast_batch_size: Concurrent sends per fan-out batch (default: 50)
    """

    def __init__(
        self,
        registry: ConnectionRegistry | None = None,
        batch_size: int = settings.ws_broadcast_batch_size,
    ) -> None:
        """Initialize the relay with composed components."""
        if registry is None:
            registry = ConnectionRegistry(
                generator=IdentifierGenerator(length=settings.relay_id_length),
                attempts_per_length=settings.relay_id_attempts_per_length,
            )
        self._registry = registry
        self._broadcaster = ConnectionBroadcaster(self._registry, batch_size=batch_size)
        self._router = MessageRouter(self._registry, self._broadcaster)
        self._lifecycle = ConnectionLifecycle(self._registry, self._broadcaster, self._router)
        self._shutdown = False

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def total_connections(self) -> int:
        """Total number of admitted connections."""
        return len(self._registry)

    @property
    def is_shutting_down(self) -> bool:
        return self._shutdown

    # =========================================================================
    # Transport events (delegate to lifecycle)
    # =========================================================================

    async def on_connect(self, path: str, outbound: "OutboundChannel") -> "Connection | None":
        """Admit a new connection; returns None if it was rejected."""
        if self._shutdown:
            logger.info("Rejecting connection during shutdown")
            try:
                await outbound.close(code=WSCloseCode.GOING_AWAY, reason="Server shutdown")
            except Exception as e:
                logger.warning("Failed to close connection during shutdown", error=str(e))
            return None
        return await self._lifecycle.admit(path, outbound)

    async def on_message(self, connection: "Connection", raw: str) -> "RoutingResult":
        """Handle one inbound text frame from an admitted connection."""
        return await self._lifecycle.handle_frame(connection, raw)

    async def on_close(self, connection: "Connection") -> None:
        """Handle the transport closing an admitted connection."""
        await self._lifecycle.close(connection)

    async def broadcast(self, payload: str) -> int:
        """Send a frame to every admitted connection."""
        return await self._broadcaster.broadcast(payload)

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> dict[str, Any]:
        """Aggregate statistics from all components."""
        return {
            **self._registry.get_stats(),
            **self._broadcaster.get_stats(),
            **self._router.get_stats(),
        }

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def shutdown(self) -> int:
        """Graceful shutdown - close every admitted connection."""
        self._shutdown = True
        connections = self._registry.enumerate()
        logger.info("Signaling relay shutting down", connections=len(connections))

        async def close_one(connection: "Connection") -> bool:
            try:
                await connection.outbound.close(
                    code=WSCloseCode.GOING_AWAY, reason="Server shutdown"
                )
                return True
            except Exception as e:
                logger.debug("Close failed during shutdown", connection_id=connection.id, error=str(e))
                return False

        results = await asyncio.gather(
            *[close_one(connection) for connection in connections],
            return_exceptions=True,
        )
        closed = sum(1 for r in results if r is True)

        logger.info("Signaling relay shutdown complete", closed=closed)
        return closed
