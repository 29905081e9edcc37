"""Accessors for the game server's HTTP API.

Each method performs exactly one request against an explicit base URL
(scheme included) and returns the status code with the parsed body. Only
transport failures raise; interpreting status codes is left to the caller.
"""

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any
from urllib.parse import quote

import httpx

from codegame.api.types import CreateGameRequest, CreatePlayerRequest
from codegame.errors import NetworkError


@dataclass(frozen=True, slots=True)
class ApiResponse:
    status_code: int
    data: Any = None  # parsed JSON body, None when the body is not JSON
    text: str = ""

    @property
    def ok(self) -> bool:
        return HTTPStatus.OK <= self.status_code < HTTPStatus.MULTIPLE_CHOICES


def _segment(value: str) -> str:
    return quote(value, safe="")


class ApiClient:
    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    async def _request(self, method: str, url: str, body: dict[str, Any] | None = None) -> ApiResponse:
        try:
            response = await self._http.request(method, url, json=body)
        except httpx.RequestError as e:
            raise NetworkError(f"request to {url} failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            # ValueError covers JSON decode errors from non-JSON bodies
            data = None
        return ApiResponse(status_code=response.status_code, data=data, text=response.text)

    async def get_info(self, base_url: str) -> ApiResponse:
        return await self._request("GET", f"{base_url}/api/info")

    async def get_events(self, base_url: str) -> ApiResponse:
        return await self._request("GET", f"{base_url}/api/events")

    async def list_games(self, base_url: str) -> ApiResponse:
        return await self._request("GET", f"{base_url}/api/games")

    async def create_game(self, base_url: str, request: CreateGameRequest) -> ApiResponse:
        return await self._request("POST", f"{base_url}/api/games", request.model_dump(exclude_none=True))

    async def get_game_metadata(self, base_url: str, game_id: str) -> ApiResponse:
        return await self._request("GET", f"{base_url}/api/games/{_segment(game_id)}")

    async def list_players(self, base_url: str, game_id: str) -> ApiResponse:
        return await self._request("GET", f"{base_url}/api/games/{_segment(game_id)}/players")

    async def create_player(self, base_url: str, game_id: str, request: CreatePlayerRequest) -> ApiResponse:
        return await self._request(
            "POST",
            f"{base_url}/api/games/{_segment(game_id)}/players",
            request.model_dump(exclude_none=True),
        )

    async def get_player(self, base_url: str, game_id: str, player_id: str) -> ApiResponse:
        return await self._request(
            "GET",
            f"{base_url}/api/games/{_segment(game_id)}/players/{_segment(player_id)}",
        )
