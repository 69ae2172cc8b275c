"""
Signaling Gateway Core Module.

- connection/: Connection lifecycle and broadcasting
"""

from signaling_gateway.core.connection import (
    ConnectionBroadcaster,
    ConnectionLifecycle,
    parse_channel,
)

__all__ = [
    "ConnectionBroadcaster",
    "ConnectionLifecycle",
    "parse_channel",
]
