"""
WebSocket endpoint adapters.
"""

from signaling_gateway.components.endpoints.base import SignalingEndpoint, request_target

__all__ = [
    "SignalingEndpoint",
    "request_target",
]
