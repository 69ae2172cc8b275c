"""
Connection Registry - tracks every admitted client by its relay id.

The registry is a plain insertion-ordered dict. All methods are
synchronous, so on the asyncio event loop a mutation can never be
interleaved with another connection's handler; readers that need to
await while iterating use enumerate(), which returns a snapshot.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Protocol

from shared.config.logging import get_logger
from shared.config.settings import settings
from signaling_gateway.components.connection.identifiers import IdentifierGenerator
from signaling_gateway.components.core.constants import ConnectionState, WSConstants
from signaling_gateway.components.core.exceptions import RelayError

logger = get_logger(__name__)


class OutboundChannel(Protocol):
    """
    The part of a transport connection the relay needs.

    Starlette's WebSocket satisfies this protocol.
    """

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass(eq=False)
class Connection:
    """
    One admitted client.

    Attributes:
        id: Relay-assigned id, unique among registered connections.
        channel: Numeric channel the client joined.
        outbound: Transport channel used to send to (or close) the client.
            Owned by the transport layer.
        state: Lifecycle state.
    """

    id: str
    channel: str
    outbound: OutboundChannel = field(repr=False)
    state: ConnectionState = ConnectionState.ADMITTED

    @property
    def is_admitted(self) -> bool:
        return self.state is ConnectionState.ADMITTED


class ConnectionRegistry:
    """
    Registry of currently connected clients, keyed by id.

    Invariants:
    - ids are unique among registered connections at any instant
    - membership is exactly the set of connections registered and not yet
      removed
    """

    def __init__(
        self,
        generator: IdentifierGenerator | None = None,
        attempts_per_length: int = settings.relay_id_attempts_per_length,
    ) -> None:
        self._generator = generator if generator is not None else IdentifierGenerator()
        self._attempts_per_length = max(1, attempts_per_length)
        self._connections: dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return self.lookup(connection_id) is not None

    # =========================================================================
    # Mutations
    # =========================================================================

    def register(self, channel: str, outbound: OutboundChannel) -> Connection:
        """
        Create and store a Connection with a fresh unique id.

        Raises:
            RelayError: If no unique id could be produced even at full width.
        """
        connection = Connection(
            id=self._generate_unique_id(),
            channel=channel,
            outbound=outbound,
        )
        self._connections[connection.id] = connection
        return connection

    def remove(self, connection_id: str) -> Connection | None:
        """Remove a connection. Unknown ids are ignored."""
        if self.lookup(connection_id) is None:
            return None
        return self._connections.pop(connection_id)

    # =========================================================================
    # Queries
    # =========================================================================

    def lookup(self, connection_id: object) -> Connection | None:
        """Return the connection registered under `connection_id`, if any."""
        if not isinstance(connection_id, str):
            return None
        return self._connections.get(connection_id)

    def enumerate(self) -> list[Connection]:
        """Snapshot of registered connections in registration order."""
        return list(self._connections.values())

    def ids(self) -> list[str]:
        """Registered ids in registration order."""
        return list(self._connections)

    def describe(self) -> str:
        """Listing used in log lines, e.g. ``#a3, #0f``."""
        return ", ".join(f"#{connection_id}" for connection_id in self._connections)

    def channel_counts(self) -> dict[str, int]:
        """Number of registered connections per channel."""
        return dict(Counter(c.channel for c in self._connections.values()))

    def get_stats(self) -> dict[str, int | dict[str, int]]:
        return {
            "total_connections": len(self._connections),
            "channels": self.channel_counts(),
        }

    # =========================================================================
    # Internal
    # =========================================================================

    def _generate_unique_id(self) -> str:
        """
        Draw ids until one is not registered.

        After `attempts_per_length` collisions at one width the id grows by
        one hex digit, so a crowded id space cannot stall admission.
        """
        length = self._generator.length
        attempts = 0
        while True:
            candidate = self._generator.next(length)
            if candidate not in self._connections:
                return candidate

            attempts += 1
            logger.debug("Connection id collision", candidate=candidate, attempt=attempts)

            if attempts >= self._attempts_per_length:
                if length >= WSConstants.MAX_ID_LENGTH:
                    raise RelayError("Could not allocate a unique connection id")
                length += 1
                attempts = 0
                logger.warning(
                    "Widening connection ids after repeated collisions",
                    length=length,
                    registered=len(self._connections),
                )
