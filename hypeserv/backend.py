# hypeserv - A game server status query API
# Copyright (C) 2016-2023 Lloyd Dilley, Felix Ern (MindSolve)
# http://www.dilley.me/
#
# Secondary optimization and customization are carried out by @molanp.
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along
# with this program; if not, write to the Free Software Foundation, Inc.,
# 51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA.
import asyncio
import dataclasses
import logging
import re
from enum import Enum
from time import perf_counter
from types import MappingProxyType
from typing import Any, Mapping

import opengsq.protocols

from .errors import QueryError

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Game:
    protocol: str
    """class name in `opengsq.protocols`"""
    port: int
    """default query port"""
    status: str
    """coroutine returning the server status"""
    players: str | None = None
    """coroutine returning the player list, if the protocol has a separate one"""
    rules: str | None = None
    """coroutine returning the server rules/cvars, if the protocol has them"""


_SOURCE = Game("Source", 27015, "get_info", "get_players", "get_rules")
_UNREAL2 = Game("Unreal2", 7778, "get_details", "get_players", "get_rules")

GAMES: Mapping[str, Game] = MappingProxyType(
    {
        "minecraft": Game("Minecraft", 25565, "get_status"),
        "minecraftbe": Game("RakNet", 19132, "get_status"),
        "raknet": Game("RakNet", 19132, "get_status"),
        "source": _SOURCE,
        "csgo": _SOURCE,
        "counterstrike2": _SOURCE,
        "tf2": _SOURCE,
        "garrysmod": _SOURCE,
        "gmod": _SOURCE,
        "rust": Game("Source", 28015, "get_info", "get_players", "get_rules"),
        "ark": _SOURCE,
        "samp": Game("Samp", 7777, "get_status", "get_players", "get_rules"),
        "vcmp": Game("Vcmp", 8192, "get_status", "get_players"),
        "fivem": Game("FiveM", 30120, "get_info", "get_players"),
        "battlefield": Game("Battlefield", 47200, "get_info", "get_players"),
        "quake1": Game("Quake1", 27500, "get_status"),
        "quake2": Game("Quake2", 27910, "get_status"),
        "quake3": Game("Quake3", 27960, "get_status"),
        "gamespy1": Game("GameSpy1", 7778, "get_status"),
        "gamespy2": Game("GameSpy2", 23000, "get_status"),
        "gamespy3": Game("GameSpy3", 29900, "get_status"),
        "gamespy4": Game("GameSpy4", 19567, "get_status"),
        "ase": Game("ASE", 22126, "get_status"),
        "doom3": Game("Doom3", 27666, "get_status"),
        "unreal2": _UNREAL2,
        "killingfloor": Game("KillingFloor", 7708, "get_details", "get_players", "get_rules"),
    }
)
"""Supported query-types"""

DEFAULTS: Mapping[str, Any] = MappingProxyType(
    {
        "maxRetries": 1,
        "socketTimeout": 2000,
        "attemptTimeout": 10000,
        "givenPortOnly": False,
        "requestPlayers": True,
        "requestPlayersRequired": False,
        "requestRules": False,
        "requestRulesRequired": False,
        "stripColors": True,
        "debug": False,
    }
)
"""Option defaults, timeouts are in milliseconds"""

_NAME_KEYS = (
    "name",
    "hostname",
    "sv_hostname",
    "server_name",
    "description",
    "motd",
    "motd_line1",
    "si_name",
)
_MAP_KEYS = ("map", "mapname", "map_name", "mapName", "si_map")
_NUMPLAYERS_KEYS = ("num_players", "numplayers", "players.online", "clients", "players")
_MAXPLAYERS_KEYS = (
    "max_players",
    "maxplayers",
    "players.max",
    "sv_maxclients",
    "maxclients",
    "si_maxPlayers",
)
_VERSION_KEYS = ("version.name", "version", "gamever", "shortversion")
_PASSWORD_KEYS = ("password", "passworded", "needpass", "g_needpass", "visibility")


def chat_text(raw: Any) -> str:
    """Flatten a Minecraft JSON chat component (as dict) to plain text."""
    if isinstance(raw, dict):
        text = chat_text(raw.get("text", ""))
        for sub in raw.get("extra") or []:
            text += chat_text(sub)
        return text
    if raw is None:
        return ""
    return str(raw)


def strip_colors(text: str) -> str:
    """Strip Minecraft `§x` and Quake `^N` formatting codes."""
    return re.sub(r"\^\d", "", re.sub(r"§.", "", text))


def to_plain(obj: Any) -> Any:
    """Convert a protocol response (dataclasses, enums, bytes...) to JSON compatible data."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_plain(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, Enum):
        return to_plain(obj.value)
    if isinstance(obj, dict):
        return {str(key): to_plain(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_plain(item) for item in obj]
    if isinstance(obj, (bytes, bytearray)):
        return obj.decode("utf-8", errors="replace")
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)


def _get(data: Mapping[str, Any], path: str) -> Any:
    value: Any = data
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _find(data: dict[str, Any], keys: tuple[str, ...], convert) -> Any:
    scopes = [data]
    if isinstance(data.get("info"), dict):
        scopes.append(data["info"])
    for scope in scopes:
        for key in keys:
            value = convert(_get(scope, key))
            if value is not None:
                return value
    return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_text(value: Any) -> Any:
    if isinstance(value, (str, dict)) and value:
        return value
    return None


def _as_str(value: Any) -> str | None:
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _as_flag(value: Any) -> bool | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, str):
        return value.lower() not in ("", "0", "false", "no")
    return bool(value)


def _player_list(status: dict[str, Any], players: Any) -> list[dict[str, Any]]:
    if not isinstance(players, list):
        players = _get(status, "players.sample")
    if not isinstance(players, list):
        players = status.get("players")
    if not isinstance(players, list):
        return []
    return [player if isinstance(player, dict) else {"name": str(player)} for player in players]


def normalize(
    host: str,
    port: int,
    ping: int,
    raw: dict[str, Any],
    strip: bool = True,
) -> dict[str, Any]:
    """Pick the common fields out of the protocol specific responses."""
    status = raw["status"] if isinstance(raw.get("status"), dict) else {}
    players = _player_list(status, raw.get("players"))

    name = chat_text(_find(status, _NAME_KEYS, _as_text))
    if strip:
        name = strip_colors(name)
    numplayers = _find(status, _NUMPLAYERS_KEYS, _as_int)
    if numplayers is None:
        numplayers = len(players)

    return {
        "name": name,
        "map": _find(status, _MAP_KEYS, _as_str) or "",
        "password": bool(_find(status, _PASSWORD_KEYS, _as_flag)),
        "numplayers": numplayers,
        "maxplayers": _find(status, _MAXPLAYERS_KEYS, _as_int) or 0,
        "players": players,
        "version": _find(status, _VERSION_KEYS, _as_str) or "",
        "connect": f"[{host}]:{port}" if ":" in host else f"{host}:{port}",
        "ping": ping,
        "queryPort": port,
        "raw": raw,
    }


async def _optional(client: Any, method: str, required: bool, what: str) -> Any:
    try:
        return to_plain(await getattr(client, method)())
    except Exception as e:
        if required:
            raise QueryError(f"Failed to fetch {what}: {e}") from e
        logger.debug("Ignoring %s failure: %s", what, e)
        return None


async def _attempt(game: Game, host: str, port: int, opts: Mapping[str, Any]) -> dict[str, Any]:
    protocol = getattr(opengsq.protocols, game.protocol, None)
    if protocol is None:
        raise QueryError(f"Protocol {game.protocol} is not available")

    client = protocol(host, port, opts["socketTimeout"] / 1000)

    start = perf_counter()
    raw: dict[str, Any] = {"status": to_plain(await getattr(client, game.status)())}
    ping = round((perf_counter() - start) * 1000)

    if game.players and opts["requestPlayers"]:
        raw["players"] = await _optional(
            client, game.players, opts["requestPlayersRequired"], "players"
        )
    if game.rules and opts["requestRules"]:
        raw["rules"] = await _optional(
            client, game.rules, opts["requestRulesRequired"], "rules"
        )

    return normalize(host, port, ping, raw, strip=opts["stripColors"])


def _valid_port(port: Any) -> int:
    if isinstance(port, bool) or not isinstance(port, (int, float)) or port != int(port):
        raise QueryError(f"Invalid port: {port}")
    if not 0 < port <= 65535:
        raise QueryError(f"Invalid port: {port}")
    return int(port)


async def query(options: Mapping[str, Any]) -> dict[str, Any]:
    """
    Query a game server.

    :param options: `type` and `host`, optionally `port` and the tuning options in `DEFAULTS`.
    :return: Common fields (`name`, `map`, `players`, ...) plus the protocol responses under `raw`.
    :raises QueryError: if the type is unknown or no attempt got an answer
    """
    opts = {**DEFAULTS, **options}
    log = logger.info if opts["debug"] else logger.debug

    query_type = opts.get("type")
    game = GAMES.get(query_type)
    if game is None:
        raise QueryError(f"Invalid game: {query_type}")

    host = opts.get("host")
    if not host:
        raise QueryError("No host given")
    port = _valid_port(opts["port"]) if opts.get("port") is not None else game.port

    ports = [port]
    if not opts["givenPortOnly"] and port != game.port:
        ports.append(game.port)

    retries = max(1, int(opts["maxRetries"]))
    attempt_timeout = opts["attemptTimeout"] / 1000

    log("Querying %s at %s with %s", query_type, host, opts)
    error: Exception | None = None
    for candidate in ports:
        for attempt in range(1, retries + 1):
            try:
                result = await asyncio.wait_for(
                    _attempt(game, host, candidate, opts), attempt_timeout
                )
            except asyncio.TimeoutError as e:
                error = e
                logger.debug(
                    "Attempt %d on %s:%d timed out", attempt, host, candidate
                )
            except Exception as e:
                error = e
                logger.debug(
                    "Attempt %d on %s:%d failed: %s", attempt, host, candidate, e
                )
            else:
                log("Response from %s:%d: %s", host, candidate, result["raw"])
                return result

    message = str(error) or f"{type(error).__name__} after {retries} attempt(s)"
    raise QueryError(message) from error
