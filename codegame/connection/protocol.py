"""Abstract socket connection used by the connection manager."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable


class SocketConnection(ABC):
    """
    Abstract interface for one physical socket to the game server.

    This abstraction lets the connection manager and the session
    operations be tested without a real WebSocket. Frames are JSON text.
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Full URL the socket was opened with, including scheme."""
        ...

    @abstractmethod
    async def send_text(self, data: str) -> None:
        """
        Send one text frame. Raise ConnectionError if the socket is closed.
        """
        ...

    @abstractmethod
    async def receive_text(self) -> str:
        """
        Receive one text frame. Raise ConnectionError once the socket is closed.
        """
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        """
        Close the socket. Closing twice is a no-op.
        """
        ...


# Opens a socket for a full URL. Raises NetworkError if the server cannot be reached.
SocketFactory = Callable[[str], Awaitable[SocketConnection]]
