from __future__ import annotations

import asyncio
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ValidationError

from codegame.api.types import CreatedGame, CreatedPlayer, CreateGameRequest, CreatePlayerRequest
from codegame.client.base import Socket, game_path, require
from codegame.connection.manager import DecodedFrame
from codegame.errors import (
    ConfigLimitError,
    GameNotFound,
    InvalidSecretOrFull,
    NetworkError,
    PlayerNotFound,
    ProtocolError,
    ServerError,
    ServerRejection,
    SessionNotFound,
)
from codegame.messaging.encoder import decode
from codegame.messaging.types import (
    ConnectedData,
    ErrorData,
    InfoData,
    JoinedData,
    LocalEventType,
    NewPlayerData,
    StandardEventType,
)
from codegame.session.models import Session
from codegame.session.store import SessionStore
from codegame.shared.storage import FileDataStore

if TYPE_CHECKING:
    import httpx

    from codegame.api.client import ApiResponse
    from codegame.client.settings import ClientSettings
    from codegame.connection.protocol import SocketFactory
    from codegame.messaging.dispatcher import Listener, ListenerId
    from codegame.shared.storage import DataStore

logger = structlog.get_logger()


def _error_message(data: dict[str, Any] | None) -> str:
    try:
        return ErrorData.model_validate(data or {}).message
    except ValidationError:
        return "unknown error"


def _rejection(response: ApiResponse, fallback: str) -> ServerRejection:
    """Map a failed HTTP response to the matching ServerRejection subclass."""
    message = response.text or fallback
    match response.status_code:
        case HTTPStatus.NOT_FOUND:
            return GameNotFound(message)
        case HTTPStatus.INTERNAL_SERVER_ERROR:
            return ServerError(message)
        case _:
            return ServerRejection(message)


class GameSocket(Socket):
    """
    Client for playing (or watching) one game on a CodeGame server.

    Event listeners receive ``(data, origin)``: the event payload (None when
    the event carries none) and the id of the player who caused it, if any.
    The local ``ready`` and ``close`` events are delivered without arguments.

    Sessions are persisted per host and username in ``data_store``, so a
    dropped player can come back with ``restore_session(username)``.
    """

    def __init__(
        self,
        host: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        socket_factory: SocketFactory | None = None,
        data_store: DataStore | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        super().__init__(host, http_client=http_client, socket_factory=socket_factory, settings=settings)
        self._sessions = SessionStore(data_store or FileDataStore(self._settings.data_dir), self._host)
        self._session: Session | None = None
        self._username: str | None = None

        self._listen(StandardEventType.INFO, self._on_info, once=False)
        self._listen(StandardEventType.NEW_PLAYER, self._on_new_player, once=False)
        self._listen(StandardEventType.LEFT, self._on_left, once=False)
        self._listen(StandardEventType.ERROR, self._on_error, once=False)

    @property
    def username(self) -> str | None:
        return self._username

    def get_session(self) -> Session | None:
        """The session of the connected player, None while spectating or disconnected."""
        return self._session

    def _decode_frame(self, frame: str) -> DecodedFrame:
        event = decode(frame)
        return DecodedFrame(event.name, (event.data, event.origin))

    def on(self, name: str, callback: Listener) -> ListenerId:
        """Call ``callback(data, origin)`` every time the event ``name`` arrives."""
        return self._listen(name, callback, once=False)

    def once(self, name: str, callback: Listener) -> ListenerId:
        """Like ``on``, but the listener is removed after its first call."""
        return self._listen(name, callback, once=True)

    async def send(self, name: str, data: dict[str, Any] | None = None) -> bool:
        """Send a game command. Return False if no socket is open."""
        return await self._connection.send(name, data)

    async def create(
        self,
        is_public: bool,
        is_protected: bool,
        config: dict[str, Any] | None = None,
    ) -> CreatedGame:
        """Create a new game. ``join_secret`` is only set for protected games."""
        request = CreateGameRequest(public=is_public, protected=is_protected, config=config)
        response = await self._call_api(lambda base: self._api.create_game(base, request))
        if not response.ok:
            if response.status_code == HTTPStatus.FORBIDDEN:
                raise ConfigLimitError(response.text or "the server refused to create more games")
            raise _rejection(response, "unable to create game")

        try:
            game = CreatedGame.model_validate(response.data)
        except ValidationError as e:
            raise ProtocolError(f"malformed create game response: {e}") from e
        logger.info("created game", game_id=game.game_id, public=is_public, protected=is_protected)
        return game

    async def join(self, game_id: str, username: str, join_secret: str | None = None) -> Session:
        """Create a player in ``game_id`` and connect as that player."""
        require(game_id=game_id, username=username)
        self._set_game_id(game_id)

        request = CreatePlayerRequest(username=username, join_secret=join_secret)
        response = await self._call_api(lambda base: self._api.create_player(base, game_id, request))
        if not response.ok:
            if response.status_code == HTTPStatus.FORBIDDEN:
                raise InvalidSecretOrFull(response.text or "invalid join secret or game full")
            raise _rejection(response, "unable to join game")
        try:
            player = CreatedPlayer.model_validate(response.data)
        except ValidationError as e:
            raise ProtocolError(f"malformed create player response: {e}") from e

        endpoint = self._with_query(
            f"{game_path(game_id)}/connect",
            player_id=player.player_id,
            player_secret=player.player_secret,
        )
        joined = await self._request(
            endpoint,
            StandardEventType.JOIN,
            {"game_id": game_id, "username": username},
            StandardEventType.JOINED,
            JoinedData,
        )
        secret = joined.secret or player.player_secret

        session = Session(game_id=game_id, player_id=player.player_id, player_secret=secret)
        self._start_session(username, session)
        self._identity.add_player(player.player_id, username)
        logger.info("joined game", game_id=game_id, player_id=player.player_id, username=username)
        await self._identity.refresh_all()
        return session

    async def connect(self, game_id: str, player_id: str, player_secret: str) -> Session:
        """Resume an existing player identity."""
        require(game_id=game_id, player_id=player_id, player_secret=player_secret)
        self._set_game_id(game_id)

        await self._identity.refresh_all()
        username = await self._identity.get_username(player_id)
        if username is None:
            raise PlayerNotFound(player_id, self._host)

        endpoint = self._with_query(
            f"{game_path(game_id)}/connect",
            player_id=player_id,
            player_secret=player_secret,
        )
        connected = await self._request(
            endpoint,
            StandardEventType.CONNECT,
            {"game_id": game_id, "player_id": player_id, "secret": player_secret},
            StandardEventType.CONNECTED,
            ConnectedData,
        )
        username = connected.username or username

        session = Session(game_id=game_id, player_id=player_id, player_secret=player_secret)
        self._start_session(username, session)
        logger.info("connected to game", game_id=game_id, player_id=player_id, username=username)
        return session

    async def restore_session(self, username: str) -> Session:
        """Reconnect with the session stored for ``username`` on this host."""
        require(username=username)
        session = self._sessions.load(username)
        if session is None:
            raise SessionNotFound(self._host, username)
        return await self.connect(session.game_id, session.player_id, session.player_secret)

    async def spectate(self, game_id: str) -> None:
        """Watch ``game_id`` without a player identity. Nothing is persisted."""
        require(game_id=game_id)
        self._set_game_id(game_id)
        self._session = None
        self._username = None

        await self._connection.open(f"{game_path(game_id)}/spectate")
        if not await self._connection.send(StandardEventType.SPECTATE, {"game_id": game_id}):
            raise NetworkError(f"unable to send spectate request to {self._host}")
        logger.info("spectating game", game_id=game_id)
        await self._identity.refresh_all()

    async def leave(self) -> None:
        """Leave the current game and forget its session.

        The server is not asked to acknowledge; the stored session is deleted
        whether or not the leave request went out.
        """
        session = self._session
        username = self._username
        if session is None or username is None:
            logger.warning("not in a game, nothing to leave")
            return

        await self._connection.send(StandardEventType.LEAVE)
        self._sessions.delete(username)
        self._session = None
        self._username = None
        await self._connection.close()
        logger.info("left game", game_id=session.game_id, player_id=session.player_id)

    def _start_session(self, username: str, session: Session) -> None:
        self._sessions.save(username, session)
        self._session = session
        self._username = username

    async def _request[M: BaseModel](
        self,
        endpoint: str,
        request_name: str,
        data: dict[str, Any],
        confirmation: str,
        model: type[M],
    ) -> M:
        """Open a socket to ``endpoint``, send a request and wait for its confirmation.

        Return the confirmation payload validated as ``model``. A ``cg_error``
        answer raises ServerRejection and a malformed confirmation raises
        ProtocolError; both close the socket. The socket closing first raises
        NetworkError.
        """
        loop = asyncio.get_running_loop()
        result: asyncio.Future[dict[str, Any] | None] = loop.create_future()

        def settle(payload: dict[str, Any] | None, origin: str | None = None) -> None:
            if not result.done():
                result.set_result(payload)

        def reject(error: Exception) -> None:
            if not result.done():
                result.set_exception(error)

        listener_ids = [
            self._listen(confirmation, settle, once=True),
            self._listen(
                StandardEventType.ERROR,
                lambda payload, origin=None: reject(ServerRejection(_error_message(payload))),
                once=True,
            ),
        ]
        try:
            await self._connection.open(endpoint)
            # registered after opening: reopening closes the previous socket
            listener_ids.append(
                self._listen(
                    LocalEventType.CLOSE,
                    lambda: reject(NetworkError(f"connection to {self._host} closed before {confirmation}")),
                    once=True,
                )
            )
            if not await self._connection.send(request_name, data):
                raise NetworkError(f"unable to send {request_name} to {self._host}")
            payload = await result
        except ServerRejection as e:
            logger.error("request rejected by the server", request=request_name, reason=e.message)
            await self._connection.close()
            raise
        finally:
            for listener_id in listener_ids:
                self.remove_listener(listener_id)

        try:
            return model.model_validate(payload or {})
        except ValidationError as e:
            logger.error("malformed confirmation", request=request_name, event_name=confirmation)
            await self._connection.close()
            raise ProtocolError(f"malformed {confirmation} payload: {e}") from e

    def _on_info(self, data: dict[str, Any] | None, origin: str | None = None) -> None:
        try:
            info = InfoData.model_validate(data or {})
        except ValidationError as e:
            logger.warning("ignoring malformed roster", error=str(e))
            return
        self._identity.apply_roster(info.players)

    def _on_new_player(self, data: dict[str, Any] | None, origin: str | None = None) -> None:
        if origin is None:
            return
        try:
            player = NewPlayerData.model_validate(data or {})
        except ValidationError:
            logger.warning("ignoring malformed new player event", player_id=origin)
            return
        self._identity.add_player(origin, player.username)
        logger.info("new player", player_id=origin, username=player.username)

    def _on_left(self, data: dict[str, Any] | None, origin: str | None = None) -> None:
        if origin is not None:
            logger.info("player left", player_id=origin, username=self._identity.cached(origin))
            self._identity.forget_player(origin)

    def _on_error(self, data: dict[str, Any] | None, origin: str | None = None) -> None:
        logger.warning("server error event", message=_error_message(data))
