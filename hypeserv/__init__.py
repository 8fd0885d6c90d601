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
"""
hypeserv - query game servers over HTTP.

`GET /query/<type>?host=<host>[:<port>]` resolves the host (SRV aware where the
type supports it) and answers with the game server status as JSON.
"""
from .app import create_app
from .backend import GAMES, query
from .config import Settings
from .endpoint import (
    SRV_PREFIXES,
    EndpointResolver,
    ResolvedEndpoint,
    parse_host_and_port,
)
from .errors import ConfigError, ErrorKind, HostUnreachable, LookupFailed, QueryError
from .lookup import DnsLookup, SrvRecord

__version__ = "1.0.0"

__all__ = [
    "ConfigError",
    "DnsLookup",
    "EndpointResolver",
    "ErrorKind",
    "GAMES",
    "HostUnreachable",
    "LookupFailed",
    "QueryError",
    "ResolvedEndpoint",
    "SRV_PREFIXES",
    "Settings",
    "SrvRecord",
    "create_app",
    "parse_host_and_port",
    "query",
]
