"""
WebSocket Context for audit logging.

Encapsulates connection metadata so lifecycle events are audited with the
same fields every time, plus the sanitizer applied to client-provided text
before it reaches a log line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from starlette.websockets import WebSocket


# Control characters and Unicode direction overrides are stripped from
# anything a client sent before it is logged.
_CONTROL_CHAR_PATTERN = re.compile(
    r'[\x00-\x1f\x7f-\x9f'  # ASCII control characters
    r'\u200b-\u200f'  # Zero-width and direction marks
    r'\u202a-\u202e'  # Bidirectional text formatting (RTL override, etc.)
    r'\u2066-\u2069'  # Isolate formatting characters
    r'\ufeff]'  # BOM / Zero-width no-break space
)


def sanitize_log_data(data: str, max_length: int = 100) -> str:
    """
    Sanitize user-provided data before logging.

    Truncates first, then removes control characters and escapes characters
    that would break a JSON log line.

    Args:
        data: Raw user data.
        max_length: Maximum length to include in logs.

    Returns:
        Sanitized, truncated string safe for structured logging.
    """
    truncated = data[:max_length] if len(data) > max_length else data
    was_truncated = len(data) > max_length

    sanitized = _CONTROL_CHAR_PATTERN.sub('', truncated)

    # Replace backslashes first to avoid double-escaping
    sanitized = sanitized.replace('\\', '\\\\')
    sanitized = sanitized.replace('"', '\\"')
    sanitized = sanitized.replace('\n', '\\n')
    sanitized = sanitized.replace('\r', '\\r')
    sanitized = sanitized.replace('\t', '\\t')

    if was_truncated:
        return sanitized + "..."
    return sanitized


@dataclass
class WebSocketContext:
    """
    Context object for WebSocket connection metadata.

    Usage:
        ctx = WebSocketContext.from_websocket(websocket, "/42")
        ctx.audit("ADMISSION_REJECTED", reason="invalid path `abc`")
        # ... or, once admitted
        ctx.connection_id, ctx.channel = connection.id, connection.channel
        ctx.audit("CONNECT")
    """

    # Connection metadata
    endpoint: str
    origin: str | None = None

    # Set once the relay admits the connection
    connection_id: str | None = None
    channel: str | None = None

    @classmethod
    def from_websocket(cls, websocket: "WebSocket", endpoint: str) -> "WebSocketContext":
        """
        Create context from a WebSocket connection.

        Args:
            websocket: The WebSocket connection.
            endpoint: The request path (e.g., "/42").

        Returns:
            WebSocketContext with basic connection info.
        """
        return cls(
            endpoint=endpoint,
            origin=websocket.headers.get("origin"),
        )

    def to_audit_dict(self, event_type: str, **extra: Any) -> dict[str, Any]:
        """
        Convert to dictionary for audit logging.

        Only includes non-None fields to reduce log noise.
        """
        result: dict[str, Any] = {
            "event_type": event_type,
            "endpoint": sanitize_log_data(self.endpoint),
        }

        if self.origin:
            result["origin"] = sanitize_log_data(self.origin)
        if self.connection_id:
            result["connection_id"] = self.connection_id
        if self.channel:
            result["channel"] = self.channel

        result.update(extra)

        return result

    def audit(
        self,
        event_type: str,
        logger_func: Any = None,
        **extra: Any,
    ) -> None:
        """
        Log an audit event.

        Args:
            event_type: The audit event type.
            logger_func: Optional custom logger function (default: shared.config.logging.audit_ws_connection).
            **extra: Additional fields to log.
        """
        if logger_func is None:
            from shared.config.logging import audit_ws_connection
            logger_func = audit_ws_connection

        audit_dict = self.to_audit_dict(event_type, **extra)
        logger_func(**audit_dict)

    @property
    def identifier(self) -> str:
        """Human-readable identifier for this connection."""
        if self.connection_id:
            return f"#{self.connection_id}"
        return "pending"
