"""
Connection Lifecycle Management.

Drives each connection through CONNECTING -> ADMITTED -> CLOSED:
admission (path validation, registration, presence announcements), frame
handling while admitted, and removal with a departure announcement.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shared.config.logging import get_logger
from signaling_gateway.components.core.constants import (
    CHANNEL_PATTERN,
    ConnectionState,
    WSCloseCode,
    WSConstants,
)
from signaling_gateway.components.core.context import sanitize_log_data
from signaling_gateway.components.core.exceptions import AdmissionError
from signaling_gateway.components.events.router import RouteOutcome, RoutingResult
from signaling_gateway.components.events.types import PresenceEnvelope

if TYPE_CHECKING:
    from signaling_gateway.components.connection.registry import (
        Connection,
        ConnectionRegistry,
        OutboundChannel,
    )
    from signaling_gateway.components.events.router import MessageRouter
    from signaling_gateway.core.connection.broadcaster import ConnectionBroadcaster

logger = get_logger(__name__)


def parse_channel(path: str) -> str:
    """
    Extract the channel from a request path.

    The channel is the path without its leading separator and must be one or
    more decimal digits: "/42" -> "42".

    Raises:
        AdmissionError: If the path does not name a valid channel.
    """
    channel = path[1:] if path.startswith(WSConstants.PATH_SEPARATOR) else path
    if not CHANNEL_PATTERN.fullmatch(channel):
        raise AdmissionError(channel)
    return channel


class ConnectionLifecycle:
    """
    Manages the lifecycle of relay connections.

    Responsibilities:
    - Validate the requested channel and register admitted connections
    - Announce identity and presence on join, departure on leave
    - Hand frames from admitted connections to the MessageRouter
    """

    def __init__(
        self,
        registry: "ConnectionRegistry",
        broadcaster: "ConnectionBroadcaster",
        router: "MessageRouter",
    ) -> None:
        """
        Initialize lifecycle manager with dependencies.

        Args:
            registry: Registry of admitted connections
            broadcaster: Sends presence notifications
            router: Routes frames from admitted connections
        """
        self._registry = registry
        self._broadcaster = broadcaster
        self._router = router

    async def admit(self, path: str, outbound: "OutboundChannel") -> "Connection | None":
        """
        Admit a new connection on `path`.

        On an invalid path the outbound channel is closed with a normal
        closure code and a reason naming the path, and nothing is registered.

        On success, in order: the connection is registered; it is sent its
        own id (``you``) and one ``peer-connected`` per peer already
        registered; then ``peer-connected`` naming it is broadcast to every
        registered connection, which includes the newcomer itself.

        Returns:
            The admitted Connection, or None if admission was rejected.
        """
        try:
            channel = parse_channel(path)
        except AdmissionError as e:
            logger.info(sanitize_log_data(str(e), WSConstants.MAX_LOGGED_PATH_LENGTH + 16))
            try:
                await outbound.close(code=WSCloseCode.NORMAL, reason=e.close_reason)
            except Exception as close_error:
                logger.warning("Failed to close rejected connection", error=str(close_error))
            return None

        connection = self._registry.register(channel, outbound)

        logger.info(f"client connected #{connection.id} on path {channel}")
        logger.info(
            f"active connections on {channel}: {len(self._registry)} "
            f"{{ {self._registry.describe()} }}"
        )

        await self._broadcaster.send_to_connection(
            connection, PresenceEnvelope.you(connection.id).to_json()
        )
        for peer in self._registry.enumerate():
            # A peer may have left while an earlier send was in flight
            if peer.id == connection.id or not peer.is_admitted:
                continue
            await self._broadcaster.send_to_connection(
                connection, PresenceEnvelope.peer_connected(peer.id).to_json()
            )

        await self._broadcaster.broadcast(
            PresenceEnvelope.peer_connected(connection.id).to_json()
        )
        return connection

    async def handle_frame(self, connection: "Connection", raw: str) -> RoutingResult:
        """Route a frame received on an admitted connection."""
        if not connection.is_admitted:
            logger.debug(
                "Ignoring frame for connection that is not admitted",
                connection_id=connection.id,
                state=connection.state.value,
            )
            return RoutingResult(RouteOutcome.IGNORED)
        return await self._router.route(connection, raw)

    async def close(self, connection: "Connection") -> bool:
        """
        Remove a connection and announce its departure to the rest.

        Idempotent: closing an already closed connection does nothing.

        Returns:
            True if the connection was closed by this call.
        """
        if connection.state is ConnectionState.CLOSED:
            return False

        connection.state = ConnectionState.CLOSED
        logger.info(f"client disconnected: #{connection.id} {connection.channel}")

        self._registry.remove(connection.id)

        await self._broadcaster.broadcast(
            PresenceEnvelope.peer_disconnected(connection.id).to_json()
        )
        return True
