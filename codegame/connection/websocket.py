"""SocketConnection backed by the ``websockets`` client."""

import contextlib

import structlog
import websockets
import websockets.exceptions

from codegame.connection.protocol import SocketConnection
from codegame.errors import NetworkError

logger = structlog.get_logger()

# Keepalive pings so a silently dropped connection is noticed.
_PING_INTERVAL = 20.0
_PING_TIMEOUT = 10.0
_CLOSE_TIMEOUT = 5.0


class WebSocketConnection(SocketConnection):
    def __init__(self, websocket: websockets.ClientConnection, url: str) -> None:
        self._websocket = websocket
        self._url = url

    @property
    def url(self) -> str:
        return self._url

    async def send_text(self, data: str) -> None:
        try:
            await self._websocket.send(data)
        except websockets.exceptions.ConnectionClosed:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_text(self) -> str:
        try:
            message = await self._websocket.recv()
        except websockets.exceptions.ConnectionClosed:
            raise ConnectionError("WebSocket already disconnected") from None
        if isinstance(message, bytes):
            return message.decode("utf-8", errors="replace")
        return message

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(websockets.exceptions.WebSocketException, OSError):
            await self._websocket.close(code=code, reason=reason)


async def connect_websocket(url: str) -> SocketConnection:
    """Open a WebSocket to ``url``. Default socket factory of the client."""
    try:
        websocket = await websockets.connect(
            url,
            ping_interval=_PING_INTERVAL,
            ping_timeout=_PING_TIMEOUT,
            close_timeout=_CLOSE_TIMEOUT,
        )
    except (websockets.exceptions.WebSocketException, OSError, TimeoutError) as e:
        logger.debug("websocket connect failed", url=url, error=str(e))
        raise NetworkError(f"unable to open WebSocket to {url}: {e}") from e
    return WebSocketConnection(websocket, url)
