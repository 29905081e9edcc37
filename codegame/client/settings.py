"""Client configuration via environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


def _default_data_dir() -> Path:
    """Per-user data directory, following the XDG base directory layout."""
    xdg_data_home = Path.home() / ".local" / "share"
    return xdg_data_home / "codegame"


class ClientSettings(BaseSettings):
    model_config = {"env_prefix": "CODEGAME_"}

    # Default game server for the CLI; library callers pass the host explicitly.
    host: str = Field(default="localhost:8080", min_length=1)
    data_dir: Path = Field(default_factory=_default_data_dir)
    http_timeout: float = Field(default=10.0, gt=0)
    log_dir: str | None = None
