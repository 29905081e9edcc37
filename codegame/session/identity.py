from __future__ import annotations

from collections.abc import Awaitable, Callable
from http import HTTPStatus
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from codegame.api.types import PlayerInfo
from codegame.errors import NetworkError

if TYPE_CHECKING:
    from codegame.api.client import ApiResponse

logger = structlog.get_logger()

PlayerFetcher = Callable[[str, str], Awaitable["ApiResponse"]]  # (game_id, player_id)
RosterFetcher = Callable[[str], Awaitable["ApiResponse"]]  # (game_id)


class IdentityResolver:
    """Resolves player ids of the current game to usernames.

    Lookups hit the cache first and fall back to one request for that
    player. Failures are logged and reported as None; resolution never raises.
    """

    def __init__(self, fetch_player: PlayerFetcher, fetch_roster: RosterFetcher) -> None:
        self._fetch_player = fetch_player
        self._fetch_roster = fetch_roster
        self._usernames: dict[str, str] = {}  # player_id -> username
        self.game_id: str | None = None

    def cached(self, player_id: str) -> str | None:
        return self._usernames.get(player_id)

    def apply_roster(self, players: dict[str, str]) -> None:
        self._usernames.update(players)

    def add_player(self, player_id: str, username: str) -> None:
        self._usernames[player_id] = username

    def forget_player(self, player_id: str) -> None:
        self._usernames.pop(player_id, None)

    def clear(self) -> None:
        self._usernames.clear()

    async def get_username(self, player_id: str) -> str | None:
        username = self._usernames.get(player_id)
        if username is not None:
            return username
        return await self._fetch_username(player_id)

    async def _fetch_username(self, player_id: str) -> str | None:
        if self.game_id is None:
            logger.error("cannot resolve usernames before connecting to a game", player_id=player_id)
            return None

        try:
            response = await self._fetch_player(self.game_id, player_id)
        except NetworkError as e:
            logger.error("network error while resolving username", player_id=player_id, error=str(e))
            return None

        if response.status_code == HTTPStatus.NOT_FOUND:
            logger.warning("unable to find username for player", player_id=player_id, game_id=self.game_id)
            return None
        if not response.ok:
            logger.warning(
                "unexpected response while resolving username",
                player_id=player_id,
                status=response.status_code,
            )
            return None

        try:
            info = PlayerInfo.model_validate(response.data)
        except ValidationError:
            logger.warning("malformed player response", player_id=player_id)
            return None
        self._usernames[player_id] = info.username
        return info.username

    async def refresh_all(self) -> None:
        """Cache the usernames of every player in the current game in one request."""
        if self.game_id is None:
            logger.error("cannot get usernames before connecting to a game")
            return

        try:
            response = await self._fetch_roster(self.game_id)
        except NetworkError as e:
            logger.error("network error while fetching players", game_id=self.game_id, error=str(e))
            return

        players = response.data
        # some servers wrap the roster as {"players": {...}}
        if isinstance(players, dict) and isinstance(players.get("players"), dict):
            players = players["players"]
        if not response.ok or not isinstance(players, dict):
            logger.warning("unable to fetch players", game_id=self.game_id, status=response.status_code)
            return
        self._usernames.update({str(k): str(v) for k, v in players.items()})
