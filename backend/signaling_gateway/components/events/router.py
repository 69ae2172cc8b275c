"""
Message Router - classifies inbound frames and forwards negotiation messages.

Usage:
    router = MessageRouter(registry, broadcaster)
    result = await router.route(sender, raw_frame)

Routing rules:
- new-ice-candidate, data-offer, data-answer: forwarded verbatim to the
  connection named by ``target``; dropped when ``target`` is missing, names
  the sender, or is not registered
- every other type (including the presence types the relay emits): ignored
- frames that are not envelopes: dropped

No inbound frame ever produces more than one send, and never one back to
its sender. Nothing is reported back to the client.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from shared.config.logging import get_logger
from shared.config.settings import settings
from signaling_gateway.components.core.context import sanitize_log_data
from signaling_gateway.components.core.exceptions import MalformedEnvelopeError
from signaling_gateway.components.events.types import (
    PresenceEnvelope,
    TargetedEnvelope,
    UnknownEnvelope,
    UnknownMessageTypeTracker,
    parse_envelope,
)

if TYPE_CHECKING:
    from signaling_gateway.components.connection.registry import Connection, ConnectionRegistry

logger = get_logger(__name__)


class BroadcasterProtocol(Protocol):
    """Protocol for ConnectionBroadcaster to avoid circular imports."""

    async def send_to_connection(self, connection: "Connection", payload: str) -> bool: ...


class RouteOutcome(str, Enum):
    """What the router did with a frame."""

    FORWARDED = "forwarded"
    SEND_FAILED = "send_failed"
    DROPPED_MALFORMED = "dropped_malformed"
    DROPPED_MISSING_TARGET = "dropped_missing_target"
    DROPPED_SELF_TARGET = "dropped_self_target"
    DROPPED_UNKNOWN_TARGET = "dropped_unknown_target"
    IGNORED = "ignored"


@dataclass
class RoutingResult:
    """Result of routing one inbound frame."""

    outcome: RouteOutcome
    message_type: str | None = None
    target: Any = None

    @property
    def forwarded(self) -> bool:
        """Whether the frame was delivered to its target."""
        return self.outcome is RouteOutcome.FORWARDED

    @property
    def sends(self) -> int:
        """Number of outbound sends attempted for the frame (0 or 1)."""
        return 1 if self.outcome in (RouteOutcome.FORWARDED, RouteOutcome.SEND_FAILED) else 0


class MessageRouter:
    """
    Routes inbound frames between registered connections.

    Keeps per-outcome counters and a bounded record of the unknown message
    types it has ignored.
    """

    def __init__(
        self,
        registry: "ConnectionRegistry",
        broadcaster: BroadcasterProtocol,
        log_max_length: int = settings.log_frame_max_length,
    ) -> None:
        self._registry = registry
        self._broadcaster = broadcaster
        self._log_max_length = log_max_length
        self._unknown_types = UnknownMessageTypeTracker()
        self._outcomes: dict[RouteOutcome, int] = {outcome: 0 for outcome in RouteOutcome}

    async def route(self, sender: "Connection", raw: str) -> RoutingResult:
        """
        Classify a frame from `sender` and forward it if it is addressed.

        Args:
            sender: Connection the frame arrived on.
            raw: The frame as received.

        Returns:
            RoutingResult describing what happened.
        """
        # Every frame is logged on receipt, valid or not
        logger.info(sanitize_log_data(raw, self._log_max_length))

        try:
            envelope = parse_envelope(raw)
        except MalformedEnvelopeError as e:
            logger.debug("Dropping malformed frame", reason=e.reason)
            return self._record(RoutingResult(RouteOutcome.DROPPED_MALFORMED))

        if isinstance(envelope, TargetedEnvelope):
            return self._record(await self._route_targeted(sender, envelope))

        if isinstance(envelope, UnknownEnvelope):
            message_type = envelope.message_type[:64]
            if self._unknown_types.record(message_type):
                logger.debug("Ignoring unknown message type", message_type=message_type)
            return self._record(RoutingResult(RouteOutcome.IGNORED, message_type=message_type))

        if isinstance(envelope, PresenceEnvelope):
            logger.debug(
                "Ignoring presence message from client",
                message_type=envelope.message_type.value,
            )
            return self._record(
                RoutingResult(RouteOutcome.IGNORED, message_type=envelope.message_type.value)
            )

        return self._record(RoutingResult(RouteOutcome.IGNORED))

    async def _route_targeted(
        self,
        sender: "Connection",
        envelope: TargetedEnvelope,
    ) -> RoutingResult:
        message_type = envelope.message_type.value

        if not envelope.has_target:
            return RoutingResult(RouteOutcome.DROPPED_MISSING_TARGET, message_type=message_type)

        target = envelope.target
        if target == sender.id:
            logger.info(f"ignoring {message_type} addressed to sender #{sender.id}")
            return RoutingResult(RouteOutcome.DROPPED_SELF_TARGET, message_type, target)

        target_connection = self._registry.lookup(target)
        if target_connection is None:
            logger.info(f"no target #{sanitize_log_data(str(target), 64)}")
            return RoutingResult(RouteOutcome.DROPPED_UNKNOWN_TARGET, message_type, target)

        logger.info(f"forwarding {message_type} to #{target_connection.id}")
        delivered = await self._broadcaster.send_to_connection(target_connection, envelope.raw)
        outcome = RouteOutcome.FORWARDED if delivered else RouteOutcome.SEND_FAILED
        return RoutingResult(outcome, message_type, target)

    def _record(self, result: RoutingResult) -> RoutingResult:
        self._outcomes[result.outcome] += 1
        return result

    def get_stats(self) -> dict[str, Any]:
        return {
            "frames": {outcome.value: count for outcome, count in self._outcomes.items()},
            **self._unknown_types.get_metrics(),
        }
