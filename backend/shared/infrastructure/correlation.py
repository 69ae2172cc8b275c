"""
Connection correlation for logging.

Every WebSocket connection is served by its own task, so a ContextVar set
when the connection is admitted tags every log line emitted while handling
that connection's events (including fan-out performed on its behalf).
"""

from contextvars import ContextVar, Token

# Context variable for the id of the connection being handled (task-local)
connection_id_var: ContextVar[str] = ContextVar("connection_id", default="")


def get_connection_id() -> str:
    """Get the id of the connection currently being handled."""
    return connection_id_var.get()


def bind_connection_id(connection_id: str) -> Token:
    """
    Bind a connection id to the current context.

    Returns the token needed to restore the previous value with
    reset_connection_id().
    """
    return connection_id_var.set(connection_id)


def reset_connection_id(token: Token) -> None:
    """Restore the connection id that was bound before bind_connection_id()."""
    connection_id_var.reset(token)


class CorrelationIdFilter:
    """
    Logging filter that adds connection_id to log records.

    Usage:
        import logging
        handler = logging.StreamHandler()
        handler.addFilter(CorrelationIdFilter())
    """

    def filter(self, record) -> bool:
        record.connection_id = connection_id_var.get() or "-"
        return True
