from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class StandardEventType(StrEnum):
    """Event names defined by the CodeGame protocol itself."""

    JOIN = "cg_join"
    JOINED = "cg_joined"
    NEW_PLAYER = "cg_new_player"
    LEAVE = "cg_leave"
    LEFT = "cg_left"
    CONNECT = "cg_connect"
    CONNECTED = "cg_connected"
    SPECTATE = "cg_spectate"
    INFO = "cg_info"
    ERROR = "cg_error"


class LocalEventType(StrEnum):
    """Client lifecycle events synthesized locally, never sent over the wire."""

    READY = "ready"
    CLOSE = "close"


class RawEventType(StrEnum):
    """Events of the physical socket, delivered to raw listeners."""

    MESSAGE = "message"
    CLOSE = "close"


class EventEnvelope(BaseModel):
    """Wire envelope shared by commands and events: ``{"name": ..., "data": ...}``."""

    name: str = Field(min_length=1)
    data: dict[str, Any] | None = None


class OriginEnvelope(BaseModel):
    """Server-to-client envelope carrying the sender separately from the event."""

    origin: str
    event: EventEnvelope


class InboundEvent(BaseModel):
    name: str
    data: dict[str, Any] | None = None
    origin: str | None = None


class JoinedData(BaseModel):
    secret: str | None = None


class ConnectedData(BaseModel):
    username: str | None = None


class NewPlayerData(BaseModel):
    username: str


class InfoData(BaseModel):
    players: dict[str, str] = Field(default_factory=dict)


class ErrorData(BaseModel):
    message: str = "unknown error"
