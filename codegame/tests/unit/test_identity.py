from unittest.mock import AsyncMock

import pytest

from codegame.api.client import ApiResponse
from codegame.errors import NetworkError
from codegame.session.identity import IdentityResolver


@pytest.fixture
def fetch_player():
    return AsyncMock(return_value=ApiResponse(200, {"username": "carol"}))


@pytest.fixture
def fetch_roster():
    return AsyncMock(return_value=ApiResponse(200, {"p1": "alice", "p2": "bob"}))


@pytest.fixture
def resolver(fetch_player, fetch_roster):
    resolver = IdentityResolver(fetch_player, fetch_roster)
    resolver.game_id = "g1"
    return resolver


class TestIdentityResolver:
    async def test_cached_username_needs_no_request(self, resolver, fetch_player):
        resolver.apply_roster({"p1": "alice", "p2": "bob"})

        assert await resolver.get_username("p2") == "bob"
        fetch_player.assert_not_awaited()

    async def test_cache_miss_fetches_once_then_caches(self, resolver, fetch_player):
        assert await resolver.get_username("p3") == "carol"
        assert await resolver.get_username("p3") == "carol"

        fetch_player.assert_awaited_once_with("g1", "p3")
        assert resolver.cached("p3") == "carol"

    async def test_unknown_player_returns_none(self, resolver, fetch_player, caplog):
        fetch_player.return_value = ApiResponse(404, None, "not found")

        assert await resolver.get_username("p9") is None
        assert "unable to find username for player" in caplog.text

    async def test_server_error_returns_none(self, resolver, fetch_player):
        fetch_player.return_value = ApiResponse(500, None, "oops")

        assert await resolver.get_username("p9") is None
        assert resolver.cached("p9") is None

    async def test_malformed_body_returns_none(self, resolver, fetch_player):
        fetch_player.return_value = ApiResponse(200, {"name": "carol"})

        assert await resolver.get_username("p9") is None

    async def test_network_error_returns_none(self, resolver, fetch_player, caplog):
        fetch_player.side_effect = NetworkError("unreachable")

        assert await resolver.get_username("p9") is None
        assert "network error while resolving username" in caplog.text

    async def test_no_game_returns_none_without_request(self, fetch_player, fetch_roster, caplog):
        resolver = IdentityResolver(fetch_player, fetch_roster)

        assert await resolver.get_username("p1") is None
        fetch_player.assert_not_awaited()
        assert "cannot resolve usernames before connecting to a game" in caplog.text

    async def test_refresh_all_caches_roster(self, resolver, fetch_roster, fetch_player):
        await resolver.refresh_all()

        fetch_roster.assert_awaited_once_with("g1")
        assert await resolver.get_username("p1") == "alice"
        fetch_player.assert_not_awaited()

    async def test_refresh_all_accepts_wrapped_roster(self, resolver, fetch_roster):
        fetch_roster.return_value = ApiResponse(200, {"players": {"p7": "gina"}})

        await resolver.refresh_all()

        assert resolver.cached("p7") == "gina"

    async def test_refresh_all_failure_keeps_cache(self, resolver, fetch_roster):
        resolver.add_player("p1", "alice")
        fetch_roster.side_effect = NetworkError("unreachable")

        await resolver.refresh_all()

        assert resolver.cached("p1") == "alice"

    def test_forget_player(self, resolver):
        resolver.add_player("p1", "alice")

        resolver.forget_player("p1")

        assert resolver.cached("p1") is None
