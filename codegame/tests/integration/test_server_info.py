from codegame.client.game_socket import GameSocket
from codegame.tests.mocks import MockHttpServer


class TestServerInfo:
    async def test_fetch_info(self, socket):
        info = await socket.fetch_info()

        assert info is not None
        assert info.name == "test-game"
        assert info.cg_version == "0.7"

    async def test_non_codegame_host_returns_none(self, socket, server, caplog):
        server.route("GET", "/api/info", body={"hello": "world"})

        assert await socket.fetch_info() is None
        assert "does not seem to belong to a CodeGame server" in caplog.text

    async def test_compatible_version(self, socket):
        assert await socket.check_version_compatible() is True

    async def test_version_mismatch_is_logged(self, socket, server, caplog):
        server.route("GET", "/api/info", body={"name": "test-game", "cg_version": "0.6"})

        assert await socket.check_version_compatible() is False
        assert "CodeGame version mismatch" in caplog.text

    async def test_unreachable_server_fails_version_check(self, factory, data_store, caplog):
        server = MockHttpServer(refused_schemes=("https", "http"))
        socket = GameSocket(
            "localhost:8080", http_client=server.client(), socket_factory=factory, data_store=data_store
        )

        assert await socket.check_version_compatible() is False
        assert "unable to check server version" in caplog.text
        await socket.aclose()

    async def test_context_manager_checks_version_and_closes(self, server, factory, data_store):
        http_client = server.client()
        async with GameSocket(
            "http://localhost:8080/", http_client=http_client, socket_factory=factory, data_store=data_store
        ) as socket:
            assert socket.host == "localhost:8080"
            await socket.spectate("g1")

        assert len(server.requests_to("/api/info")) == 1
        assert factory.last.is_closed
        # the caller's client stays usable
        assert not http_client.is_closed
        await http_client.aclose()


class TestGameMetadata:
    async def test_metadata_of_current_game(self, socket, server):
        server.route("GET", "/api/games/g1", body={"id": "g1", "players": 2, "protected": True, "config": {"size": 3}})
        await socket.spectate("g1")

        metadata = await socket.fetch_game_metadata()

        assert metadata is not None
        assert metadata.players == 2
        assert metadata.config == {"size": 3}

    async def test_metadata_without_game_returns_none(self, socket, server):
        assert await socket.fetch_game_metadata() is None
        assert server.requests == []

    async def test_missing_game_returns_none(self, socket, caplog):
        await socket.spectate("g1")

        assert await socket.fetch_game_metadata() is None
        assert "game does not exist" in caplog.text

    async def test_list_games_and_events(self, socket, server):
        server.route("GET", "/api/games", body={"private": 1, "public": [{"id": "g1", "players": 1}]})
        server.route("GET", "/api/events", body={"name": "test-game", "commands": []})

        assert await socket.list_games() == {"private": 1, "public": [{"id": "g1", "players": 1}]}
        assert await socket.fetch_events() == {"name": "test-game", "commands": []}
