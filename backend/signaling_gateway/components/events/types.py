"""
Signaling envelope value objects.

Every inbound frame is parsed once, at the boundary, into exactly one of:

- TargetedEnvelope  - negotiation messages addressed to one peer
                      (new-ice-candidate, data-offer, data-answer)
- PresenceEnvelope  - presence messages the relay itself emits
                      (you, peer-connected, peer-disconnected)
- UnknownEnvelope   - any other ``type`` value, kept for forward compatibility

Frames that are not a JSON object with a ``type`` key raise
MalformedEnvelopeError instead.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from shared.config.logging import get_logger
from signaling_gateway.components.core.exceptions import MalformedEnvelopeError

logger = get_logger(__name__)


class MessageType(str, Enum):
    """Message types understood by the relay."""

    # Presence (relay -> client)
    YOU = "you"
    PEER_CONNECTED = "peer-connected"
    PEER_DISCONNECTED = "peer-disconnected"

    # Negotiation (client -> relay -> client)
    NEW_ICE_CANDIDATE = "new-ice-candidate"
    DATA_OFFER = "data-offer"
    DATA_ANSWER = "data-answer"


TARGETED_MESSAGE_TYPES: frozenset[MessageType] = frozenset({
    MessageType.NEW_ICE_CANDIDATE,
    MessageType.DATA_OFFER,
    MessageType.DATA_ANSWER,
})

PRESENCE_MESSAGE_TYPES: frozenset[MessageType] = frozenset({
    MessageType.YOU,
    MessageType.PEER_CONNECTED,
    MessageType.PEER_DISCONNECTED,
})

# Set for O(1) lookup of raw "type" strings
VALID_MESSAGE_TYPES: frozenset[str] = frozenset(t.value for t in MessageType)

# Compact separators match what browsers produce with JSON.stringify
_JSON_SEPARATORS = (",", ":")


@dataclass(frozen=True, slots=True)
class TargetedEnvelope:
    """
    A negotiation message addressed to a single peer.

    Attributes:
        message_type: One of TARGETED_MESSAGE_TYPES.
        target: Value of the ``target`` field, or None when absent or null.
            Kept as sent; a non-string target can never match a registered id.
        raw: The frame exactly as received. This is what gets forwarded.
    """

    message_type: MessageType
    target: Any
    raw: str = field(repr=False)

    @property
    def has_target(self) -> bool:
        return self.target is not None


@dataclass(frozen=True, slots=True)
class PresenceEnvelope:
    """
    A presence notification (``you``, ``peer-connected``, ``peer-disconnected``).

    The relay builds these for outbound delivery. Clients have no reason to
    send them, and the router ignores them when they do.
    """

    message_type: MessageType
    peer_id: str | None
    raw: str | None = field(default=None, repr=False)

    @classmethod
    def you(cls, peer_id: str) -> PresenceEnvelope:
        return cls(MessageType.YOU, peer_id)

    @classmethod
    def peer_connected(cls, peer_id: str) -> PresenceEnvelope:
        return cls(MessageType.PEER_CONNECTED, peer_id)

    @classmethod
    def peer_disconnected(cls, peer_id: str) -> PresenceEnvelope:
        return cls(MessageType.PEER_DISCONNECTED, peer_id)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.message_type.value, "peer": {"id": self.peer_id}}

    def to_json(self) -> str:
        """Wire form, e.g. ``{"type":"you","peer":{"id":"a3"}}``."""
        return json.dumps(self.to_dict(), separators=_JSON_SEPARATORS)


@dataclass(frozen=True, slots=True)
class UnknownEnvelope:
    """An envelope whose ``type`` the relay does not know."""

    message_type: str
    raw: str = field(repr=False)


Envelope = Union[TargetedEnvelope, PresenceEnvelope, UnknownEnvelope]


def parse_envelope(raw: str) -> Envelope:
    """
    Parse an inbound text frame into an envelope.

    Args:
        raw: The frame as received.

    Returns:
        The matching envelope variant.

    Raises:
        MalformedEnvelopeError: If the frame is not a JSON object with a
            ``type`` field.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, RecursionError) as e:
        raise MalformedEnvelopeError(f"Frame is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedEnvelopeError(
            f"Frame must be a JSON object, got {type(data).__name__}"
        )

    if "type" not in data:
        raise MalformedEnvelopeError("Frame has no type field")

    message_type = data["type"]
    if not isinstance(message_type, str) or message_type not in VALID_MESSAGE_TYPES:
        return UnknownEnvelope(message_type=str(message_type), raw=raw)

    known_type = MessageType(message_type)
    if known_type in TARGETED_MESSAGE_TYPES:
        return TargetedEnvelope(
            message_type=known_type,
            target=data.get("target"),
            raw=raw,
        )

    peer = data.get("peer")
    peer_id = peer.get("id") if isinstance(peer, dict) else None
    return PresenceEnvelope(
        message_type=known_type,
        peer_id=peer_id if isinstance(peer_id, str) else None,
        raw=raw,
    )


class UnknownMessageTypeTracker:
    """
    Tracks message types the relay ignored, for monitoring.

    Bounded: once `max_types` distinct types are tracked the oldest entry is
    evicted (dicts keep insertion order).
    """

    def __init__(self, max_types: int = 100):
        self._max_types = max_types
        # Value is the count of times this type was seen
        self._seen: dict[str, int] = {}
        self._count = 0

    @property
    def count(self) -> int:
        """Total number of unknown-type frames received."""
        return self._count

    @property
    def types_seen(self) -> list[str]:
        """Unique unknown types seen (oldest first)."""
        return list(self._seen.keys())

    def record(self, message_type: str) -> bool:
        """
        Record an unknown message type.

        Returns:
            True if the type is not currently tracked.
        """
        self._count += 1
        if message_type in self._seen:
            self._seen[message_type] += 1
            return False

        if len(self._seen) >= self._max_types:
            oldest_key = next(iter(self._seen))
            del self._seen[oldest_key]
            logger.warning(
                "Unknown message type tracker at capacity, evicting oldest",
                evicted=oldest_key,
                max_types=self._max_types,
            )
        self._seen[message_type] = 1
        return True

    def get_metrics(self) -> dict[str, Any]:
        """Get tracker metrics."""
        return {
            "unknown_message_types_count": self._count,
            "type_counts": dict(self._seen),
        }
