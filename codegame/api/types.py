from typing import Any

from pydantic import BaseModel, Field


class ServerInfo(BaseModel):
    name: str
    cg_version: str
    display_name: str | None = None
    description: str | None = None
    version: str | None = None
    repository_url: str | None = None


class CreateGameRequest(BaseModel):
    public: bool
    protected: bool
    config: dict[str, Any] | None = None


class CreatedGame(BaseModel):
    game_id: str = Field(min_length=1)
    join_secret: str | None = None


class CreatePlayerRequest(BaseModel):
    username: str = Field(min_length=1)
    join_secret: str | None = None


class CreatedPlayer(BaseModel):
    player_id: str = Field(min_length=1)
    player_secret: str = Field(min_length=1)


class PlayerInfo(BaseModel):
    username: str


class GameMetadata(BaseModel):
    id: str
    players: int = 0
    protected: bool = False
    config: dict[str, Any] | None = None

