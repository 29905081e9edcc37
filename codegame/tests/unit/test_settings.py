from pathlib import Path

import pytest
from pydantic import ValidationError

from codegame.client.settings import ClientSettings


class TestClientSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CODEGAME_HOST", raising=False)
        monkeypatch.delenv("CODEGAME_DATA_DIR", raising=False)
        monkeypatch.delenv("CODEGAME_HTTP_TIMEOUT", raising=False)

        settings = ClientSettings()

        assert settings.host == "localhost:8080"
        assert settings.data_dir == Path.home() / ".local" / "share" / "codegame"
        assert settings.http_timeout == 10.0
        assert settings.log_dir is None

    def test_reads_prefixed_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CODEGAME_HOST", "games.example.com")
        monkeypatch.setenv("CODEGAME_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("CODEGAME_HTTP_TIMEOUT", "2.5")

        settings = ClientSettings()

        assert settings.host == "games.example.com"
        assert settings.data_dir == tmp_path
        assert settings.http_timeout == 2.5

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            ClientSettings(http_timeout=0)

    def test_rejects_empty_host(self):
        with pytest.raises(ValidationError):
            ClientSettings(host="")
