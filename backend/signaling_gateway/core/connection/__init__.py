"""
Connection Management Module.

- lifecycle.py: admission, presence announcements, removal
- broadcaster.py: targeted sends and best-effort fan-out
"""

from signaling_gateway.core.connection.broadcaster import ConnectionBroadcaster
from signaling_gateway.core.connection.lifecycle import ConnectionLifecycle, parse_channel

__all__ = [
    "ConnectionBroadcaster",
    "ConnectionLifecycle",
    "parse_channel",
]
