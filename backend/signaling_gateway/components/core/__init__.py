"""
Core Signaling Gateway components.

Foundational components: constants, exceptions and logging context.
"""

from signaling_gateway.components.core.constants import (
    CHANNEL_PATTERN,
    ConnectionState,
    WSCloseCode,
    WSConstants,
)
from signaling_gateway.components.core.context import WebSocketContext, sanitize_log_data
from signaling_gateway.components.core.exceptions import (
    AdmissionError,
    MalformedEnvelopeError,
    RelayError,
)

__all__ = [
    # Constants
    "CHANNEL_PATTERN",
    "ConnectionState",
    "WSCloseCode",
    "WSConstants",
    # Context
    "WebSocketContext",
    "sanitize_log_data",
    # Exceptions
    "AdmissionError",
    "MalformedEnvelopeError",
    "RelayError",
]
