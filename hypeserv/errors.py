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
from enum import Enum


class ErrorKind(Enum):
    """
    Contains the error kinds the API answers with.

    - `HOST_TYPE_MISSING`: The query-type or the host was not given.
    - `HOST_UNREACHABLE`: The host (or its SRV target) did not resolve to any address.
    - `QUERY_FAILED`: The game server query itself failed.
    - `NOT_FOUND`: No route matched the request.
    """

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def status_code(self) -> int:
        """HTTP status code sent along with this error kind"""
        return self.value[0]

    @property
    def message(self) -> str:
        """Human readable message sent along with this error kind"""
        return self.value[1]

    HOST_TYPE_MISSING = (400, "Missing type or host")
    """The query-type or the host was not given. (Client input error)"""

    HOST_UNREACHABLE = (
        400,
        "Host not reachable or cannot be resolved. Please ensure the host is reachable.",
    )
    """The host could not be resolved. (Resolution failure)"""

    QUERY_FAILED = (502, "Query to game server failed")
    """The game server did not answer the query. (Downstream failure)"""

    NOT_FOUND = (404, "Not found")
    """No route matched the request."""


class HostUnreachable(Exception):
    """Raised when no usable address can be confirmed for a host."""

    def __init__(self, host: str) -> None:
        super().__init__(f"Host {host!r} cannot be resolved")
        self.host = host


class LookupFailed(Exception):
    """Raised by the DNS collaborator when a name yields no usable answer."""


class QueryError(Exception):
    """Raised by the query backend when a game server could not be queried."""


class ConfigError(ValueError):
    """Raised when the process environment holds an unusable setting."""
