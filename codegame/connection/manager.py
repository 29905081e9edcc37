from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from codegame.errors import DecodeError, NetworkError
from codegame.messaging.dispatcher import EventDispatcher, Listener, ListenerId
from codegame.messaging.encoder import encode
from codegame.messaging.types import LocalEventType, RawEventType

if TYPE_CHECKING:
    from codegame.connection.protocol import SocketConnection, SocketFactory
    from codegame.connection.transport import TransportNegotiator

logger = structlog.get_logger()


class ConnectionState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class DecodedFrame:
    """An inbound frame reduced to an event name and the listener arguments."""

    name: str
    payload: tuple[Any, ...] = ()


FrameDecoder = Callable[[str], DecodedFrame]


class ConnectionManager:
    """
    Owns the single socket between the client and the game server.

    Opening while a socket is open closes the old socket first, so there is
    never more than one. Inbound frames are decoded and handed to the event
    dispatcher in arrival order. A socket that drops is never reopened here;
    reconnecting is up to the caller.

    Raw listeners see the frames and the closing of the current socket only.
    They are dropped when that socket closes.
    """

    def __init__(
        self,
        host: str,
        *,
        negotiator: TransportNegotiator,
        dispatcher: EventDispatcher,
        socket_factory: SocketFactory,
        decoder: FrameDecoder,
    ) -> None:
        self._host = host
        self._negotiator = negotiator
        self._dispatcher = dispatcher
        self._socket_factory = socket_factory
        self._decoder = decoder
        self._state = ConnectionState.IDLE
        self._connection: SocketConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._opening: asyncio.Task[None] | None = None
        self._raw_listeners = EventDispatcher()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def url(self) -> str | None:
        return self._connection.url if self._connection is not None else None

    async def open(self, endpoint: str) -> None:
        """Open a socket to ``endpoint`` (a path on the host, query included).

        A call made while another open is in flight waits for that attempt
        instead of starting a second socket. Raises NetworkError when the
        server cannot be reached over ``wss`` or ``ws``.
        """
        if self._opening is not None and not self._opening.done():
            logger.debug("open already in progress, awaiting it", endpoint=endpoint)
            await self._await_opening(asyncio.shield(self._opening))
            return

        self._opening = asyncio.create_task(self._open(endpoint))
        try:
            await self._await_opening(self._opening)
        finally:
            self._opening = None

    async def _await_opening(self, opening: Awaitable[None]) -> None:
        try:
            await opening
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            # aborted by close(), not by our caller
            raise NetworkError(f"connection to {self._host} closed while opening") from None

    async def _open(self, endpoint: str) -> None:
        if self._connection is not None:
            logger.info("closing previous websocket before opening a new one", url=self._connection.url)
            await self.close()

        self._state = ConnectionState.CONNECTING

        async def attempt(scheme: str) -> SocketConnection:
            return await self._socket_factory(f"{scheme}://{self._host}{endpoint}")

        try:
            connection = await self._negotiator.negotiate("ws", attempt)
        except NetworkError:
            self._state = ConnectionState.IDLE
            raise

        self._connection = connection
        self._state = ConnectionState.OPEN
        self._reader = asyncio.create_task(self._read_loop(connection))
        logger.info("websocket opened", url=connection.url)
        self._dispatcher.dispatch(LocalEventType.READY)

    async def send(self, name: str, data: dict[str, Any] | None = None) -> bool:
        """Send a command. Return False if it was dropped.

        Nothing is queued or retried: a command sent while no socket is open
        is logged and discarded.
        """
        connection = self._connection
        if self._state is not ConnectionState.OPEN or connection is None:
            logger.error("no websocket connection established, dropping command", event_name=name)
            return False
        try:
            await connection.send_text(encode(name, data))
        except ConnectionError as e:
            logger.error("unable to send command", event_name=name, error=str(e))
            return False
        logger.debug("sent command", event_name=name, data=data)
        return True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the current socket, or abort the open in progress.

        A no-op when there is neither. An aborted open raises NetworkError
        in the operation that started it.
        """
        connection = self._connection
        reader = self._reader
        if connection is None:
            opening = self._opening
            if opening is not None and not opening.done() and opening is not asyncio.current_task():
                opening.cancel()
                await asyncio.wait([opening])
                self._state = ConnectionState.CLOSED
                logger.info("aborted websocket open", host=self._host)
            return

        self._connection = None
        self._reader = None
        self._state = ConnectionState.CLOSED
        await connection.close(code=code, reason=reason)
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        logger.info("websocket closed", url=connection.url)
        self._socket_closed()

    def add_raw_listener(self, event: RawEventType, callback: Listener, *, once: bool = False) -> ListenerId:
        return self._raw_listeners.register(event, callback, once=once)

    def remove_raw_listener(self, listener_id: ListenerId) -> bool:
        return self._raw_listeners.remove(listener_id)

    async def _read_loop(self, connection: SocketConnection) -> None:
        try:
            while True:
                frame = await connection.receive_text()
                self._handle_frame(frame)
        except ConnectionError:
            pass
        except Exception:
            logger.exception("websocket error", url=connection.url)
            await connection.close(code=1011, reason="client_error")
        finally:
            # still current: the server or the network closed it, not close()
            if self._connection is connection:
                self._connection = None
                self._reader = None
                self._state = ConnectionState.CLOSED
                logger.warning("websocket closed by the server", url=connection.url)
                self._socket_closed()

    def _handle_frame(self, frame: str) -> None:
        self._raw_listeners.dispatch(RawEventType.MESSAGE, frame)
        try:
            decoded = self._decoder(frame)
        except DecodeError as e:
            logger.error("dropping malformed message", error=str(e))
            return
        logger.debug("received event", event_name=decoded.name, payload=decoded.payload)
        self._dispatcher.dispatch(decoded.name, *decoded.payload)

    def _socket_closed(self) -> None:
        self._raw_listeners.dispatch(RawEventType.CLOSE)
        self._raw_listeners.clear()
        self._dispatcher.dispatch(LocalEventType.CLOSE)
