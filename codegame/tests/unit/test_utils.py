import pytest

from codegame.utils import trim_url


class TestTrimUrl:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("localhost:8080", "localhost:8080"),
            ("http://localhost:8080", "localhost:8080"),
            ("https://games.example.com/", "games.example.com"),
            ("wss://games.example.com/base/", "games.example.com/base"),
        ],
    )
    def test_strips_scheme_and_trailing_slash(self, url, expected):
        assert trim_url(url) == expected
