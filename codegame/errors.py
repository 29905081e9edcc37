"""Typed exceptions raised by the client.

Transport and HTTP library exceptions never leave the client raw: the HTTP
accessors and the socket factory convert them to NetworkError, and the
session operations convert server refusals to ServerRejection subclasses.
"""


class CodeGameError(Exception):
    """Base exception for every error raised by the client."""


class NetworkError(CodeGameError):
    """The game server could not be reached.

    Never retried automatically. Reconnecting is always the caller's decision.
    """


class ProtocolError(CodeGameError):
    """The server sent something that does not follow the protocol."""


class DecodeError(ProtocolError):
    """An inbound frame could not be decoded into an event."""


class ServerRejection(CodeGameError):
    """The server explicitly refused a request.

    Attributes:
        message: Human-readable reason supplied by the server, or a generic
            description when the server supplied none.

    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigLimitError(ServerRejection):
    """Game creation refused because a server-side quota was reached."""


class ServerError(ServerRejection):
    """The server failed for technical reasons (HTTP 500)."""


class InvalidSecretOrFull(ServerRejection):
    """Joining refused: wrong join secret or the game is full."""


class GameNotFound(ServerRejection):
    """The requested game does not exist on the server."""


class ConfigurationError(CodeGameError, ValueError):
    """A call was made with invalid arguments (missing game id, empty username, ...)."""


class SessionNotFound(CodeGameError):
    """No persisted session exists for the requested host and username."""

    def __init__(self, host: str, username: str) -> None:
        self.host = host
        self.username = username
        super().__init__(f"unable to restore session for game server '{host}' and username '{username}'")


class PlayerNotFound(CodeGameError):
    """A player id could not be resolved to a username on the server."""

    def __init__(self, player_id: str, host: str) -> None:
        self.player_id = player_id
        self.host = host
        super().__init__(f"player '{player_id}' does not exist on game server '{host}'")
