"""
WebSocket Endpoint.

Adapts a Starlette WebSocket to the relay: accept, admit, receive loop,
close. The relay itself never touches ASGI messages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from shared.config.logging import get_logger
from shared.infrastructure.correlation import bind_connection_id, reset_connection_id
from signaling_gateway.components.core.constants import ConnectionState
from signaling_gateway.components.core.context import WebSocketContext

if TYPE_CHECKING:
    from signaling_gateway.components.connection.registry import Connection
    from signaling_gateway.relay import SignalingRelay

logger = get_logger(__name__)


def request_target(websocket: WebSocket) -> str:
    """
    The request target as the client sent it, e.g. "/42" or "/42?x=1".

    Uses the undecoded path, so "/%34%32" stays "/%34%32" and is not a
    channel. The query string is kept and makes the target invalid.
    """
    scope = websocket.scope
    raw_path = scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else scope["path"]
    query_string = scope.get("query_string", b"")
    if query_string:
        path = f"{path}?{query_string.decode('latin-1')}"
    return path


class SignalingEndpoint:
    """
    Serves one WebSocket connection for its whole life.

    Handles the complete lifecycle:
    1. Accept the WebSocket handshake
    2. Admit (or reject) the requested channel
    3. Message loop: every text frame goes to the relay
    4. Close the relay connection on disconnect

    Usage:
        endpoint = SignalingEndpoint(websocket, relay, path)
        await endpoint.run()
    """

    def __init__(
        self,
        websocket: WebSocket,
        relay: "SignalingRelay",
        path: str,
    ):
        """
        Initialize the endpoint handler.

        Args:
            websocket: The WebSocket connection.
            relay: SignalingRelay instance.
            path: Request path, e.g. "/42".
        """
        self.websocket = websocket
        self.relay = relay
        self.path = path
        self.context = WebSocketContext.from_websocket(websocket, path)
        self.connection: "Connection | None" = None

    @property
    def state(self) -> ConnectionState:
        """Lifecycle state of this endpoint's connection."""
        if self.connection is None:
            return ConnectionState.CONNECTING
        return self.connection.state

    async def run(self) -> None:
        """Main entry point - run the WebSocket endpoint."""
        # Rejections are delivered as a close frame, which needs an open socket
        await self.websocket.accept()

        self.connection = await self.relay.on_connect(self.path, self.websocket)
        if self.connection is None:
            reason = "shutdown" if self.relay.is_shutting_down else "invalid_path"
            self.context.audit("ADMISSION_REJECTED", reason=reason)
            return

        token = bind_connection_id(self.connection.id)
        self.context.connection_id = self.connection.id
        self.context.channel = self.connection.channel
        self.context.audit("CONNECT")

        reason = "client_disconnect"
        try:
            await self._message_loop()
        except WebSocketDisconnect:
            pass
        except Exception as e:
            reason = "error"
            logger.error(
                "Unexpected error in connection",
                identifier=self.context.identifier,
                error=str(e),
                exc_info=True,
            )
        finally:
            await self.relay.on_close(self.connection)
            self.context.audit("DISCONNECT", reason=reason)
            await self._close_quietly()
            reset_connection_id(token)

    async def _message_loop(self) -> None:
        """Receive frames until the client goes away."""
        while True:
            raw = await self._receive_frame()
            if raw is None:
                continue
            await self.relay.on_message(self.connection, raw)

    async def _receive_frame(self) -> str | None:
        """
        Receive the next frame as text.

        Binary frames are decoded as UTF-8. Returns None for frames that
        cannot be decoded (they are dropped like any malformed frame).

        Raises:
            WebSocketDisconnect: When the client disconnects.
        """
        message = await self.websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(
                code=message.get("code", 1000),
                reason=message.get("reason"),
            )

        text = message.get("text")
        if text is not None:
            return text

        data = message.get("bytes")
        if data is None:
            return None
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            logger.info(
                "Dropping binary frame that is not UTF-8",
                identifier=self.context.identifier,
                size=len(data),
            )
            return None

    async def _close_quietly(self) -> None:
        """Close the socket if the application side still has it open."""
        if self.websocket.application_state != WebSocketState.CONNECTED:
            return
        if self.websocket.client_state == WebSocketState.DISCONNECTED:
            return
        try:
            await self.websocket.close()
        except RuntimeError as e:
            logger.debug("WebSocket already closed", error=str(e))
