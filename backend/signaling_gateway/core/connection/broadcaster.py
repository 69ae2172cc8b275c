"""
Connection Broadcaster.

Handles sending frames to relay connections: single targeted sends and
best-effort fan-out to every registered connection.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from shared.config.logging import get_logger
from shared.config.settings import settings
from signaling_gateway.components.core.context import sanitize_log_data

if TYPE_CHECKING:
    from signaling_gateway.components.connection.registry import Connection, ConnectionRegistry

logger = get_logger(__name__)


class ConnectionBroadcaster:
    """
    Sends frames to registered connections.

    A failing recipient never affects the others: every send is attempted
    independently and failures are logged per recipient.
    """

    def __init__(
        self,
        registry: "ConnectionRegistry",
        batch_size: int = settings.ws_broadcast_batch_size,
        log_max_length: int = settings.log_frame_max_length,
    ) -> None:
        """
        Initialize broadcaster with dependencies.

        Args:
            registry: Registry whose connections receive broadcasts
            batch_size: Number of connections sent to concurrently
            log_max_length: Truncation applied to frames written to the log
        """
        self._registry = registry
        self._batch_size = max(1, batch_size)
        self._log_max_length = log_max_length

        self._broadcasts_total = 0
        self._sends_total = 0
        self._sends_failed = 0

    async def send_to_connection(self, connection: "Connection", payload: str) -> bool:
        """
        Send a text frame to a single connection.

        Returns:
            True if sent successfully, False otherwise.
        """
        if not connection.is_admitted:
            logger.debug(
                "Skipping send to closed connection",
                connection_id=connection.id,
            )
            return False

        self._sends_total += 1
        try:
            await connection.outbound.send_text(payload)
            return True
        except Exception as e:
            self._sends_failed += 1
            logger.warning(
                "Send failed",
                connection_id=connection.id,
                error=str(e) or type(e).__name__,
            )
            return False

    async def broadcast(self, payload: str) -> int:
        """
        Send a frame to every registered connection.

        The recipient list is the registry as it stands when the broadcast
        starts; connections registered while it is in flight may miss it.

        Returns:
            Number of connections that received the frame.
        """
        logger.info(f"broadcasting: {sanitize_log_data(payload, self._log_max_length)}")
        self._broadcasts_total += 1
        return await self._broadcast_to_connections(
            self._registry.enumerate(), payload, "global"
        )

    async def _broadcast_to_connections(
        self,
        connections: list["Connection"],
        payload: str,
        context: str,
    ) -> int:
        """
        Send to multiple connections, `batch_size` at a time.

        Sends inside a batch are started in list order and run concurrently.
        """
        if not connections:
            return 0

        sent = 0
        failed = 0

        for i in range(0, len(connections), self._batch_size):
            batch = connections[i : i + self._batch_size]
            results = await asyncio.gather(
                *[self.send_to_connection(connection, payload) for connection in batch],
                return_exceptions=True,
            )

            for connection, result in zip(batch, results):
                if result is True:
                    sent += 1
                else:
                    failed += 1
                    if isinstance(result, Exception):
                        logger.warning(
                            "Broadcast send raised",
                            context=context,
                            connection_id=connection.id,
                            error=str(result),
                        )

        if failed > 0:
            logger.debug(
                "Broadcast completed with failures",
                context=context,
                sent=sent,
                failed=failed,
                total=len(connections),
            )

        return sent

    def get_stats(self) -> dict[str, int]:
        return {
            "broadcasts_total": self._broadcasts_total,
            "sends_total": self._sends_total,
            "sends_failed": self._sends_failed,
        }
