"""
Signaling message handling.

- types.py: envelope value objects and parsing
- router.py: classification and targeted forwarding
"""

from signaling_gateway.components.events.types import (
    Envelope,
    MessageType,
    PRESENCE_MESSAGE_TYPES,
    PresenceEnvelope,
    TARGETED_MESSAGE_TYPES,
    TargetedEnvelope,
    UnknownEnvelope,
    UnknownMessageTypeTracker,
    VALID_MESSAGE_TYPES,
    parse_envelope,
)
from signaling_gateway.components.events.router import (
    MessageRouter,
    RouteOutcome,
    RoutingResult,
)

__all__ = [
    # types
    "Envelope",
    "MessageType",
    "PRESENCE_MESSAGE_TYPES",
    "PresenceEnvelope",
    "TARGETED_MESSAGE_TYPES",
    "TargetedEnvelope",
    "UnknownEnvelope",
    "UnknownMessageTypeTracker",
    "VALID_MESSAGE_TYPES",
    "parse_envelope",
    # router
    "MessageRouter",
    "RouteOutcome",
    "RoutingResult",
]
