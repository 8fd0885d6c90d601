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
import math
from typing import Any, Iterable, Mapping

from .endpoint import ResolvedEndpoint

NUMERIC_KEYS = frozenset(
    {
        "port",
        "maxRetries",
        "socketTimeout",
        "attemptTimeout",
        "ipFamily",
    }
)
"""Query parameters forwarded to the query backend as numbers"""

BOOLEAN_KEYS = frozenset(
    {
        "givenPortOnly",
        "debug",
        "requestRules",
        "requestPlayers",
        "requestRulesRequired",
        "requestPlayersRequired",
        "stripColors",
        "portCache",
        "noBreadthOrder",
        "checkOldIDs",
    }
)
"""Query parameters forwarded to the query backend as booleans"""

_TRUE = ("true", "1")
_FALSE = ("false", "0")


def to_number(value: Any) -> int | float | None:
    """Parse a query string value to a finite number, integral values become `int`."""
    if value is None:
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def to_bool(value: Any) -> bool | None:
    """`true`/`1` and `false`/`0` (any case), everything else is None."""
    v = str(value).lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    return None


def first_values(items: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Collapse repeated query parameters, the first occurrence wins."""
    params: dict[str, str] = {}
    for key, value in items:
        params.setdefault(key, value)
    return params


def user_port(params: Mapping[str, str], host_port: int | None) -> int | None:
    """An explicit `port` parameter wins over a port embedded in the host."""
    port = to_number(params.get("port"))
    if isinstance(port, int):
        return port
    return host_port


def build_query_options(
    query_type: str, endpoint: ResolvedEndpoint, params: Mapping[str, str]
) -> dict[str, Any]:
    """
    Assemble the options handed to the query backend.

    Only whitelisted parameters are copied, converted to their type. Values
    that don't convert are dropped silently. A port found via SRV is never
    replaced by the `port` parameter.
    """
    options: dict[str, Any] = {"type": query_type, "host": endpoint.host}
    if endpoint.port is not None:
        options["port"] = endpoint.port

    for key, value in params.items():
        if key in ("host", "raw"):
            continue
        if key == "port" and endpoint.port_from_srv:
            continue

        if key in NUMERIC_KEYS:
            number = to_number(value)
            if number is not None:
                options[key] = number
        elif key in BOOLEAN_KEYS:
            flag = to_bool(value)
            if flag is not None:
                options[key] = flag

    return options


def wants_raw(params: Mapping[str, str]) -> bool:
    return to_bool(params.get("raw", "")) is True
