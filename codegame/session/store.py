from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote

import structlog
from pydantic import ValidationError

from codegame.session.models import Session

if TYPE_CHECKING:
    from codegame.shared.storage import DataStore

logger = structlog.get_logger()

GAMES_DIR = "games"


class SessionStore:
    """Persists sessions keyed by game server host and username.

    Records live at ``[GAMES_DIR, <quoted host>, <username>]`` in the
    injected DataStore. The store itself never touches the file system.
    """

    def __init__(self, data_store: DataStore, host: str) -> None:
        self._data_store = data_store
        self._host = host

    def _path(self, username: str) -> list[str]:
        return [GAMES_DIR, quote(self._host, safe=""), quote(username, safe="")]

    def load(self, username: str) -> Session | None:
        """Return the stored session, or None if there is none or it is unreadable."""
        try:
            data = self._data_store.read_json(self._path(username))
        except OSError as e:
            logger.warning("unable to read stored session", host=self._host, username=username, error=str(e))
            return None
        if data is None:
            return None
        try:
            return Session.model_validate(data)
        except ValidationError as e:
            logger.warning("ignoring malformed stored session", host=self._host, username=username, error=str(e))
            return None

    def save(self, username: str, session: Session) -> None:
        self._data_store.write_json(self._path(username), session.model_dump())

    def delete(self, username: str) -> None:
        self._data_store.delete(self._path(username))
