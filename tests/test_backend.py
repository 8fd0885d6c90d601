import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum

import opengsq.protocols
import pytest

from hypeserv import backend
from hypeserv.backend import GAMES, chat_text, query, strip_colors, to_plain
from hypeserv.errors import QueryError

PROTOCOLS = dict(vars(opengsq.protocols))
"""opengsq protocol classes as shipped, before any test swaps them out"""


class Visibility(Enum):
    PUBLIC = 0
    PRIVATE = 1


@dataclass
class Info:
    name: str
    map: str
    players: int
    max_players: int
    version: str
    visibility: Visibility = Visibility.PUBLIC
    keywords: bytes = b""


@dataclass
class Player:
    name: str
    score: int
    duration: float


class FakeSource:
    """Scriptable replacement for opengsq's Source protocol."""

    instances: list["FakeSource"] = []
    failing_ports: set[int] = set()
    delay: float = 0
    players_error: Exception | None = None

    def __init__(self, host, port, timeout=5.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        FakeSource.instances.append(self)

    async def get_info(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.port in self.failing_ports:
            raise ConnectionRefusedError(f"Connection refused on port {self.port}")
        return Info("^1Red ^7Server", "de_dust2", 2, 16, "1.38.7.9", keywords=b"secure")

    async def get_players(self):
        if self.players_error is not None:
            raise self.players_error
        return [Player("alice", 10, 61.5), Player("bob", 3, 12.0)]

    async def get_rules(self):
        return {"sv_gravity": "800"}


MINECRAFT_STATUS = {
    "version": {"name": "1.20.4", "protocol": 765},
    "players": {"max": 20, "online": 1, "sample": [{"name": "Steve", "id": "069a79f4"}]},
    "description": {"text": "§aHello ", "extra": [{"text": "§lWorld"}]},
}


class FakeMinecraft:
    def __init__(self, host, port, timeout=5.0):
        self.host = host
        self.port = port

    async def get_status(self):
        return MINECRAFT_STATUS


@pytest.fixture(autouse=True)
def fake_protocols(monkeypatch):
    monkeypatch.setattr(FakeSource, "instances", [])
    monkeypatch.setattr(FakeSource, "failing_ports", set())
    monkeypatch.setattr(FakeSource, "delay", 0)
    monkeypatch.setattr(FakeSource, "players_error", None)
    monkeypatch.setattr(opengsq.protocols, "Source", FakeSource, raising=False)
    monkeypatch.setattr(opengsq.protocols, "Minecraft", FakeMinecraft, raising=False)


@pytest.mark.asyncio
async def test_source_query_is_normalized():
    result = await query({"type": "csgo", "host": "10.0.0.5"})

    assert result["name"] == "Red Server"
    assert result["map"] == "de_dust2"
    assert result["password"] is False
    assert result["numplayers"] == 2
    assert result["maxplayers"] == 16
    assert result["version"] == "1.38.7.9"
    assert result["players"] == [
        {"name": "alice", "score": 10, "duration": 61.5},
        {"name": "bob", "score": 3, "duration": 12.0},
    ]
    assert result["connect"] == "10.0.0.5:27015"
    assert result["queryPort"] == 27015
    assert isinstance(result["ping"], int)
    assert result["raw"]["status"]["keywords"] == "secure"
    assert result["raw"]["status"]["visibility"] == 0
    assert "rules" not in result["raw"]


@pytest.mark.asyncio
async def test_socket_timeout_is_passed_in_seconds():
    await query({"type": "source", "host": "10.0.0.5", "port": 27016, "socketTimeout": 500})

    (client,) = FakeSource.instances
    assert client.port == 27016
    assert client.timeout == 0.5


@pytest.mark.asyncio
async def test_minecraft_status_is_normalized():
    result = await query({"type": "minecraft", "host": "mc1.example.com", "port": 25577})

    assert result["name"] == "Hello World"
    assert result["version"] == "1.20.4"
    assert result["numplayers"] == 1
    assert result["maxplayers"] == 20
    assert result["players"] == [{"name": "Steve", "id": "069a79f4"}]
    assert result["connect"] == "mc1.example.com:25577"


@pytest.mark.asyncio
async def test_colors_are_kept_on_request():
    result = await query({"type": "minecraft", "host": "::1", "stripColors": False})

    assert result["name"] == "§aHello §lWorld"
    assert result["connect"] == "[::1]:25565"


@pytest.mark.asyncio
async def test_rules_on_request():
    result = await query({"type": "csgo", "host": "10.0.0.5", "requestRules": True})

    assert result["raw"]["rules"] == {"sv_gravity": "800"}


@pytest.mark.asyncio
async def test_optional_players_failure_is_ignored():
    FakeSource.players_error = TimeoutError("no players")

    result = await query({"type": "csgo", "host": "10.0.0.5"})

    assert result["players"] == []
    assert result["numplayers"] == 2


@pytest.mark.asyncio
async def test_required_players_failure_fails_query():
    FakeSource.players_error = TimeoutError("no players")

    with pytest.raises(QueryError, match="no players"):
        await query(
            {
                "type": "csgo",
                "host": "10.0.0.5",
                "requestPlayersRequired": True,
                "givenPortOnly": True,
            }
        )


@pytest.mark.asyncio
async def test_unknown_type():
    with pytest.raises(QueryError, match="Invalid game: nope"):
        await query({"type": "nope", "host": "10.0.0.5"})


@pytest.mark.asyncio
async def test_missing_protocol_class(monkeypatch):
    monkeypatch.setattr(
        backend, "GAMES", {"future": backend.Game("DoesNotExist", 1234, "get_status")}
    )

    with pytest.raises(QueryError, match="DoesNotExist"):
        await query({"type": "future", "host": "10.0.0.5"})


@pytest.mark.asyncio
@pytest.mark.parametrize("port", [0, 70000, 1.5, -1, True])
async def test_invalid_port(port):
    with pytest.raises(QueryError, match="Invalid port"):
        await query({"type": "csgo", "host": "10.0.0.5", "port": port})


@pytest.mark.asyncio
async def test_retries_then_fails():
    FakeSource.failing_ports = {27016}

    with pytest.raises(QueryError, match="refused on port 27016"):
        await query(
            {
                "type": "csgo",
                "host": "10.0.0.5",
                "port": 27016,
                "maxRetries": 3,
                "givenPortOnly": True,
            }
        )

    assert [client.port for client in FakeSource.instances] == [27016, 27016, 27016]


@pytest.mark.asyncio
async def test_falls_back_to_default_port():
    FakeSource.failing_ports = {27016}

    result = await query({"type": "csgo", "host": "10.0.0.5", "port": 27016})

    assert result["queryPort"] == 27015
    assert [client.port for client in FakeSource.instances] == [27016, 27015]


@pytest.mark.asyncio
async def test_attempt_timeout():
    FakeSource.delay = 1

    with pytest.raises(QueryError, match="TimeoutError"):
        await query(
            {"type": "csgo", "host": "10.0.0.5", "attemptTimeout": 10, "givenPortOnly": True}
        )


@pytest.mark.asyncio
async def test_debug_logs_at_info(caplog):
    caplog.set_level(logging.INFO, logger="hypeserv.backend")

    await query({"type": "csgo", "host": "10.0.0.5", "debug": True})

    messages = [record.getMessage() for record in caplog.records]
    assert any(message.startswith("Querying csgo at 10.0.0.5") for message in messages)
    assert any(message.startswith("Response from 10.0.0.5:27015") for message in messages)


def test_chat_text_and_strip_colors():
    component = {"text": "§6Gold", "extra": [{"text": " and "}, {"text": "§9blue"}]}

    assert chat_text(component) == "§6Gold and §9blue"
    assert strip_colors(chat_text(component)) == "Gold and blue"
    assert strip_colors("^1Red^7 server") == "Red server"
    assert chat_text(None) == ""


def test_to_plain():
    @dataclass
    class Nested:
        tags: tuple = ("a", "b")
        extra: dict = field(default_factory=lambda: {1: b"\xff"})

    assert to_plain(Nested()) == {"tags": ["a", "b"], "extra": {"1": "\ufffd"}}
    assert to_plain(Visibility.PRIVATE) == 1


@pytest.mark.parametrize("query_type, game", sorted(GAMES.items()))
def test_games_name_real_protocol_methods(query_type, game):
    protocol = PROTOCOLS.get(game.protocol)
    assert protocol is not None, f"{query_type}: no opengsq protocol {game.protocol}"

    for method in (game.status, game.players, game.rules):
        if method is not None:
            assert inspect.iscoroutinefunction(getattr(protocol, method, None)), (
                f"{query_type}: {game.protocol}.{method} is not a coroutine"
            )


@pytest.mark.asyncio
async def test_doom3_status_is_normalized(monkeypatch):
    async def get_status(self):
        return {
            "info": {"si_name": "doom box", "si_map": "game/mp/d3dm1", "si_maxPlayers": "8"},
            "players": [{"name": "marine", "ping": 40}],
        }

    monkeypatch.setattr(opengsq.protocols.Doom3, "get_status", get_status)

    result = await query({"type": "doom3", "host": "10.0.0.5"})

    assert result["name"] == "doom box"
    assert result["map"] == "game/mp/d3dm1"
    assert result["maxplayers"] == 8
    assert result["players"] == [{"name": "marine", "ping": 40}]
    assert result["queryPort"] == 27666
