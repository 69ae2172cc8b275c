"""
Connection tracking components.

- identifiers.py: short connection id generation
- registry.py: registry of admitted connections
"""

from signaling_gateway.components.connection.identifiers import IdentifierGenerator
from signaling_gateway.components.connection.registry import (
    Connection,
    ConnectionRegistry,
    OutboundChannel,
)

__all__ = [
    "IdentifierGenerator",
    "Connection",
    "ConnectionRegistry",
    "OutboundChannel",
]
