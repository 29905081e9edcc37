import pytest

from codegame.client.game_socket import GameSocket
from codegame.shared.storage import MemoryDataStore
from codegame.tests.mocks import MockHttpServer, MockSocketFactory

HOST = "localhost:8080"


@pytest.fixture
def server():
    server = MockHttpServer()
    server.route("GET", "/api/info", body={"name": "test-game", "cg_version": "0.7"})
    server.route("POST", "/api/games", body={"game_id": "g1"})
    server.route("POST", "/api/games/g1/players", body={"player_id": "p1", "player_secret": "s1"})
    server.route("GET", "/api/games/g1/players", body={"p1": "alice"})
    return server


@pytest.fixture
def factory():
    return MockSocketFactory(
        replies={
            "cg_join": [{"name": "cg_joined", "data": {"secret": "s1"}}],
            "cg_connect": [{"name": "cg_connected", "data": {"username": "alice"}}],
        }
    )


@pytest.fixture
def data_store():
    return MemoryDataStore()


@pytest.fixture
async def socket(server, factory, data_store):
    socket = GameSocket(HOST, http_client=server.client(), socket_factory=factory, data_store=data_store)
    yield socket
    await socket.aclose()
