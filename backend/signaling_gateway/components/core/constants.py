"""
Signaling Gateway Constants.

Close codes, admission rules and operational limits shared by the relay
components.
"""

import re
from enum import Enum, IntEnum
from typing import Final

__all__ = [
    "WSCloseCode",
    "WSConstants",
    "ConnectionState",
    "CHANNEL_PATTERN",
]


class WSCloseCode(IntEnum):
    """
    WebSocket close codes used by the gateway.

    Standard codes (1000-1999) from RFC 6455.
    """

    NORMAL = 1000  # Normal closure (also used for rejected admissions)
    GOING_AWAY = 1001  # Server shutting down or client navigating away


class ConnectionState(str, Enum):
    """
    States of a relay connection.

    CONNECTING -> ADMITTED -> CLOSED. A connection whose path is rejected
    goes straight from CONNECTING to CLOSED and is never registered.
    """

    CONNECTING = "connecting"
    ADMITTED = "admitted"
    CLOSED = "closed"


# A channel is the request path without its leading "/": one or more
# decimal digits, nothing else.
CHANNEL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^\d+$", re.ASCII)


class WSConstants:
    """
    Signaling relay operational constants.

    Values that operators may want to tune live in
    shared.config.settings instead (id length, broadcast batch size,
    logged frame length). These are fixed implementation limits.
    """

    # ==========================================================================
    # Identifier Constants
    # ==========================================================================

    # A UUID4 rendered as hex has 32 digits; ids can never be wider.
    MAX_ID_LENGTH: Final[int] = 32

    # ==========================================================================
    # Logging Constants
    # ==========================================================================

    # Rejected paths are attacker-controlled; keep them short in logs and in
    # the close reason (RFC 6455 caps the reason at 123 bytes).
    MAX_LOGGED_PATH_LENGTH: Final[int] = 64

    # Path separator stripped from the request path to obtain the channel.
    PATH_SEPARATOR: Final[str] = "/"
