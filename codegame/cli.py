"""Command line access to a CodeGame server.

Usage:
    codegame info [host]
    codegame create [host] --public
    codegame spectate [host] <game_id>
    codegame debug [host] --game <game_id>

Without a host, CODEGAME_HOST (default localhost:8080) is used.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from codegame.client.debug_socket import DebugSocket, Severity
from codegame.client.game_socket import GameSocket
from codegame.client.settings import ClientSettings
from codegame.errors import CodeGameError
from codegame.messaging.types import LocalEventType, RawEventType
from codegame.shared.logging import setup_logging


def _add_host(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("host", nargs="?", default=None, help="Game server, defaults to CODEGAME_HOST")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="codegame", description="Talk to a CodeGame server")
    commands = parser.add_subparsers(dest="command", required=True)

    info = commands.add_parser("info", help="Show the server's name and protocol version")
    _add_host(info)

    create = commands.add_parser("create", help="Create a new game")
    _add_host(create)
    create.add_argument("--public", action="store_true", help="List the game publicly")
    create.add_argument("--protected", action="store_true", help="Require a join secret")

    spectate = commands.add_parser("spectate", help="Print the events of a game until interrupted")
    _add_host(spectate)
    spectate.add_argument("game_id")

    debug = commands.add_parser("debug", help="Print debug messages of a server or game until interrupted")
    _add_host(debug)
    debug.add_argument("--game", dest="game_id", default=None, help="Debug this game instead of the server")

    return parser


async def _info(host: str) -> int:
    async with GameSocket(host) as socket:
        info = await socket.fetch_info()
    if info is None:
        print(f"{host} is not a CodeGame server", file=sys.stderr)
        return 1
    print(f"{info.display_name or info.name} (CodeGame {info.cg_version})")
    if info.description:
        print(info.description)
    return 0


async def _create(host: str, public: bool, protected: bool) -> int:
    async with GameSocket(host) as socket:
        game = await socket.create(public, protected)
    print(f"game id: {game.game_id}")
    if game.join_secret:
        print(f"join secret: {game.join_secret}")
    return 0


async def _spectate(host: str, game_id: str) -> int:
    async with GameSocket(host) as socket:
        # raw listeners belong to one socket, so attach on ready
        socket.once(
            LocalEventType.READY,
            lambda: socket.add_raw_listener(RawEventType.MESSAGE, print),
        )
        await socket.spectate(game_id)
        await socket.wait_closed()
    return 0


async def _debug(host: str, game_id: str | None) -> int:
    async with DebugSocket(host) as socket:
        for severity in Severity:
            socket.on(severity, lambda message, data, severity=severity: print(f"[{severity}] {message}"))
        if game_id is None:
            await socket.debug_server()
        else:
            await socket.debug_game(game_id)
        await socket.wait_closed()
    return 0


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = ClientSettings()
    setup_logging(log_dir=settings.log_dir)
    host = args.host or settings.host

    match args.command:
        case "info":
            job = _info(host)
        case "create":
            job = _create(host, args.public, args.protected)
        case "spectate":
            job = _spectate(host, args.game_id)
        case _:
            job = _debug(host, args.game_id)

    try:
        code = asyncio.run(job)
    except KeyboardInterrupt:
        code = 0
    except CodeGameError as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
