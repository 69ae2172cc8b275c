"""
Relay exceptions.

Only admission failures ever reach the client (as a close frame); every
other failure is a silent drop inside the relay.
"""

from __future__ import annotations

from signaling_gateway.components.core.constants import WSConstants

# RFC 6455: the close reason must fit in a 125-byte control frame payload,
# two of which are taken by the close code.
MAX_CLOSE_REASON_BYTES = 123


class RelayError(Exception):
    """Base class for errors raised by relay components."""


class AdmissionError(RelayError):
    """
    A connection asked for a path that is not a valid channel.

    Usage:
        raise AdmissionError(path)

    The close reason sent to the client is ``invalid path `<path>` ``.
    """

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"invalid path `{path}`")

    @property
    def close_reason(self) -> str:
        """Reason string for the close frame, shortened to fit the frame."""
        reason = str(self)
        if len(reason.encode("utf-8")) <= MAX_CLOSE_REASON_BYTES:
            return reason

        path = self.path[: WSConstants.MAX_LOGGED_PATH_LENGTH]
        while path:
            reason = f"invalid path `{path}...`"
            if len(reason.encode("utf-8")) <= MAX_CLOSE_REASON_BYTES:
                return reason
            path = path[:-1]
        return "invalid path"


class MalformedEnvelopeError(RelayError, ValueError):
    """
    An inbound frame is not a signaling envelope.

    Raised when the frame is not valid JSON, is not a JSON object, or has
    no ``type`` field.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
