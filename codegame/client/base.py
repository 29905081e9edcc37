from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Self
from urllib.parse import quote, urlencode

import httpx
import structlog
from pydantic import ValidationError

from codegame.api.client import ApiClient, ApiResponse
from codegame.api.types import GameMetadata, ServerInfo
from codegame.client.settings import ClientSettings
from codegame.connection.manager import ConnectionManager, ConnectionState, DecodedFrame
from codegame.connection.transport import TransportNegotiator
from codegame.connection.websocket import connect_websocket
from codegame.errors import ConfigurationError, NetworkError
from codegame.messaging.dispatcher import EventDispatcher, Listener, ListenerId
from codegame.messaging.types import LocalEventType, RawEventType
from codegame.session.identity import IdentityResolver
from codegame.utils import trim_url

if TYPE_CHECKING:
    from codegame.connection.protocol import SocketFactory

logger = structlog.get_logger()

# CodeGame protocol version implemented by this client (major, minor).
CG_VERSION = (0, 7)


def is_version_compatible(server_version: str) -> bool:
    """Check a server's ``cg_version`` against CG_VERSION.

    Majors must match. Before 1.0 every minor version is a breaking change,
    so minors must match too; afterwards the server minor must be at least
    the client minor.
    """
    parts = server_version.split(".")
    try:
        major = int(parts[0])
        minor = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    except ValueError:
        return False
    if major != CG_VERSION[0]:
        return False
    if major == 0:
        return minor == CG_VERSION[1]
    return minor >= CG_VERSION[1]


def require(**values: str | None) -> None:
    """Raise ConfigurationError naming the first empty argument."""
    for name, value in values.items():
        if not value:
            raise ConfigurationError(f"{name} must be a non-empty string")


def game_path(game_id: str) -> str:
    return f"/api/games/{quote(game_id, safe='')}"


class Socket(ABC):
    """
    Connection to one CodeGame server: HTTP accessors, one WebSocket, and
    the listeners and username cache shared by game and debug sockets.

    Collaborators are injected; anything not passed in is built from
    ClientSettings. An HTTP client created here is closed by ``aclose()``.
    """

    def __init__(
        self,
        host: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        socket_factory: SocketFactory | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        self._host = trim_url(host)
        require(host=self._host)
        self._settings = settings or ClientSettings()
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self._settings.http_timeout)
        self._api = ApiClient(self._http)
        self._negotiator = TransportNegotiator(self._host)
        self._dispatcher = EventDispatcher()
        self._connection = ConnectionManager(
            self._host,
            negotiator=self._negotiator,
            dispatcher=self._dispatcher,
            socket_factory=socket_factory or connect_websocket,
            decoder=self._decode_frame,
        )
        self._identity = IdentityResolver(self._fetch_player, self._fetch_roster)

    async def __aenter__(self) -> Self:
        await self.check_version_compatible()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def host(self) -> str:
        return self._host

    @property
    def tls(self) -> bool | None:
        """Whether the server uses TLS; None until the first successful request."""
        return self._negotiator.tls

    @property
    def game_id(self) -> str | None:
        return self._identity.game_id

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state

    @abstractmethod
    def _decode_frame(self, frame: str) -> DecodedFrame:
        """Turn one text frame into the event name and listener arguments."""

    def _set_game_id(self, game_id: str) -> None:
        if self._identity.game_id != game_id:
            self._identity.clear()
            self._identity.game_id = game_id

    async def _call_api(self, request: Callable[[str], Awaitable[ApiResponse]]) -> ApiResponse:
        """Run one HTTP accessor against the host over https, falling back to http."""
        return await self._negotiator.negotiate("http", lambda scheme: request(f"{scheme}://{self._host}"))

    async def _fetch_player(self, game_id: str, player_id: str) -> ApiResponse:
        return await self._call_api(lambda base: self._api.get_player(base, game_id, player_id))

    async def _fetch_roster(self, game_id: str) -> ApiResponse:
        return await self._call_api(lambda base: self._api.list_players(base, game_id))

    def _listen(self, name: str, callback: Listener, *, once: bool) -> ListenerId:
        return self._dispatcher.register(name, callback, once=once)

    def remove_listener(self, listener_id: ListenerId) -> bool:
        """Remove a listener by id. Return False if there was none."""
        return self._dispatcher.remove(listener_id)

    def add_raw_listener(self, event: RawEventType, callback: Listener, *, once: bool = False) -> ListenerId:
        """Listen to the current socket directly.

        Raw listeners are dropped automatically when the socket closes; register
        them again after reconnecting.
        """
        return self._connection.add_raw_listener(event, callback, once=once)

    def remove_raw_listener(self, listener_id: ListenerId) -> bool:
        return self._connection.remove_raw_listener(listener_id)

    async def get_username(self, player_id: str) -> str | None:
        """Username of a player in the current game, or None if unavailable."""
        return await self._identity.get_username(player_id)

    async def fetch_info(self) -> ServerInfo | None:
        """Server name and protocol version, or None if the host is not a CodeGame server."""
        response = await self._call_api(self._api.get_info)
        try:
            return ServerInfo.model_validate(response.data)
        except ValidationError:
            logger.error("the URL does not seem to belong to a CodeGame server", host=self._host)
            return None

    async def check_version_compatible(self) -> bool:
        """Compare the server's protocol version with CG_VERSION and log a mismatch."""
        try:
            info = await self.fetch_info()
        except NetworkError as e:
            logger.error("unable to check server version", host=self._host, error=str(e))
            return False
        if info is None:
            return False
        if not is_version_compatible(info.cg_version):
            logger.warning(
                "CodeGame version mismatch",
                server_version=info.cg_version,
                client_version=".".join(map(str, CG_VERSION)),
            )
            return False
        return True

    async def fetch_game_metadata(self) -> GameMetadata | None:
        """Id, player count and configuration of the current game."""
        game_id = self._identity.game_id
        if game_id is None:
            logger.error("cannot get game metadata before connecting to a game")
            return None
        response = await self._call_api(lambda base: self._api.get_game_metadata(base, game_id))
        if response.status_code == HTTPStatus.NOT_FOUND:
            logger.warning("game does not exist", game_id=game_id)
            return None
        try:
            return GameMetadata.model_validate(response.data)
        except ValidationError:
            logger.warning("malformed game metadata", game_id=game_id, status=response.status_code)
            return None

    async def list_games(self) -> Any:
        """Games the server lists publicly, as returned by the server."""
        response = await self._call_api(self._api.list_games)
        return response.data if response.ok else None

    async def fetch_events(self) -> Any:
        """The server's event and command definitions, as returned by the server."""
        response = await self._call_api(self._api.get_events)
        return response.data if response.ok else None

    @staticmethod
    def _with_query(endpoint: str, **params: str) -> str:
        return f"{endpoint}?{urlencode(params)}"

    async def wait_closed(self) -> None:
        """Wait until the current socket closes, for whatever reason."""
        if not self._connection.is_open:
            return
        closed = asyncio.Event()
        listener_id = self._listen(LocalEventType.CLOSE, closed.set, once=True)
        try:
            await closed.wait()
        finally:
            self.remove_listener(listener_id)

    async def disconnect(self) -> None:
        """Close the WebSocket.

        Listeners stay registered, and the session and username cache are
        kept, so a later connect resumes where this left off.
        """
        await self._connection.close()
        logger.info("closed the websocket connection", host=self._host)

    async def aclose(self) -> None:
        """Disconnect and release the HTTP client if this socket created it."""
        await self.disconnect()
        if self._owns_http_client:
            await self._http.aclose()
