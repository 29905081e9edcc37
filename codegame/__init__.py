"""Client library for CodeGame servers."""

from codegame.client.base import CG_VERSION, is_version_compatible
from codegame.client.debug_socket import DebugSocket, Severity
from codegame.client.game_socket import GameSocket
from codegame.client.settings import ClientSettings
from codegame.errors import (
    CodeGameError,
    ConfigLimitError,
    ConfigurationError,
    GameNotFound,
    InvalidSecretOrFull,
    NetworkError,
    PlayerNotFound,
    ProtocolError,
    ServerError,
    ServerRejection,
    SessionNotFound,
)
from codegame.messaging.types import LocalEventType, RawEventType, StandardEventType
from codegame.session.models import Session

__version__ = "0.7.0"

__all__ = [
    "CG_VERSION",
    "ClientSettings",
    "CodeGameError",
    "ConfigLimitError",
    "ConfigurationError",
    "DebugSocket",
    "GameNotFound",
    "GameSocket",
    "InvalidSecretOrFull",
    "LocalEventType",
    "NetworkError",
    "PlayerNotFound",
    "ProtocolError",
    "RawEventType",
    "ServerError",
    "ServerRejection",
    "Session",
    "SessionNotFound",
    "Severity",
    "StandardEventType",
    "__version__",
    "is_version_compatible",
]
