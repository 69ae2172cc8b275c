"""
Infrastructure module.

Provides:
- Per-connection log correlation (correlation.py)
"""

from shared.infrastructure.correlation import (
    CorrelationIdFilter,
    bind_connection_id,
    get_connection_id,
    reset_connection_id,
)

__all__ = [
    "CorrelationIdFilter",
    "bind_connection_id",
    "get_connection_id",
    "reset_connection_id",
]
