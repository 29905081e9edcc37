from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import structlog
from pydantic import BaseModel, ValidationError

from codegame.client.base import Socket, game_path, require
from codegame.connection.manager import DecodedFrame
from codegame.errors import DecodeError
from codegame.messaging.encoder import decode_json

if TYPE_CHECKING:
    from codegame.messaging.dispatcher import Listener, ListenerId

logger = structlog.get_logger()


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    TRACE = "trace"


class DebugMessage(BaseModel):
    severity: Severity
    message: str
    data: Any = None


class DebugSocket(Socket):
    """
    Read-only stream of the debug messages a server, game or player emits.

    Listeners are registered per severity and receive ``(message, data)``.
    """

    def _decode_frame(self, frame: str) -> DecodedFrame:
        raw = decode_json(frame)
        try:
            entry = DebugMessage.model_validate(raw)
        except ValidationError as e:
            raise DecodeError(f"invalid debug message: {e}") from e
        return DecodedFrame(entry.severity, (entry.message, entry.data))

    def on(self, severity: Severity, callback: Listener) -> ListenerId:
        return self._listen(severity, callback, once=False)

    def once(self, severity: Severity, callback: Listener) -> ListenerId:
        return self._listen(severity, callback, once=True)

    async def debug_server(self) -> None:
        await self._connection.open("/api/debug")
        logger.info("debugging server", host=self._host)

    async def debug_game(self, game_id: str) -> None:
        require(game_id=game_id)
        self._set_game_id(game_id)
        await self._connection.open(f"{game_path(game_id)}/debug")
        logger.info("debugging game", host=self._host, game_id=game_id)

    async def debug_player(self, game_id: str, player_id: str, player_secret: str) -> None:
        require(game_id=game_id, player_id=player_id, player_secret=player_secret)
        self._set_game_id(game_id)
        endpoint = self._with_query(
            f"{game_path(game_id)}/players/{quote(player_id, safe='')}/debug",
            player_secret=player_secret,
        )
        await self._connection.open(endpoint)
        logger.info("debugging player", host=self._host, game_id=game_id, player_id=player_id)
