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
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Protocol

from .errors import HostUnreachable, LookupFailed
from .lookup import DnsLookup, SrvRecord

logger = logging.getLogger(__name__)

SRV_PREFIXES: Mapping[str, str] = MappingProxyType(
    {
        "minecraft": "_minecraft._tcp",
    }
)
"""SRV service prefix per query-type. Types without an entry skip SRV discovery."""

_BRACKETED_IPV6 = re.compile(r"^\[([^\]]+)\]:(\d{1,5})$")
_PORT = re.compile(r"^\d{1,5}$")


def _finite_port(digits: str) -> int | None:
    port = float(digits)
    return int(port) if math.isfinite(port) else None


def parse_host_and_port(value: str) -> tuple[str, int | None]:
    """
    Split a user supplied address into host and optional port.

    - `[2001:db8::1]:25565` -> (`2001:db8::1`, 25565)
    - `example.com:25565` -> (`example.com`, 25565)
    - `example.com` -> (`example.com`, None)

    Only the last colon is considered a port separator, and only if it is
    followed by 1-5 digits. IPv6 together with a port needs the bracketed form.
    """
    s = value.strip()

    m6 = _BRACKETED_IPV6.match(s)
    if m6:
        return m6.group(1), _finite_port(m6.group(2))

    host, sep, maybe_port = s.rpartition(":")
    if sep and _PORT.match(maybe_port):
        return host, _finite_port(maybe_port)

    return s, None


@dataclass(frozen=True)
class ResolvedEndpoint:
    host: str
    """host name or address the query is sent to"""
    port: int | None = None
    """port to query, None lets the query backend pick its default"""
    port_from_srv: bool = False
    """whether `port` was taken from a SRV record"""


class SrvStatus(Enum):
    """
    Outcome of the SRV discovery step.

    - `FOUND`: A SRV record exists and its target resolves.
    - `NOT_FOUND`: No prefix for the type, no record, or the lookup failed.
    """

    def __str__(self) -> str:
        return str(self.name)

    FOUND = 0
    NOT_FOUND = 1


@dataclass(frozen=True)
class SrvAttempt:
    status: SrvStatus
    record: SrvRecord | None = None


NO_SRV = SrvAttempt(SrvStatus.NOT_FOUND)


class AddressLookup(Protocol):
    async def resolve_srv(self, name: str) -> list[SrvRecord]: ...

    async def resolve_address(self, name: str) -> list[str]: ...


class EndpointResolver:
    """
    Turns a query-type and a user supplied host into the endpoint to query.

    Hosts of query-types with a SRV prefix are looked up as
    `<prefix>.<host>` first. SRV discovery is best effort: every failure
    there falls back to the plain A/AAAA check of the host itself.
    """

    def __init__(
        self,
        lookup: AddressLookup | None = None,
        srv_prefixes: Mapping[str, str] = SRV_PREFIXES,
    ) -> None:
        self.lookup = lookup if lookup is not None else DnsLookup()
        self.srv_prefixes = srv_prefixes

    async def resolve(
        self, query_type: str, host: str, user_port: int | None = None
    ) -> ResolvedEndpoint:
        """
        Resolve the endpoint for `host`.

        :param query_type: The query-type, selects the SRV prefix.
        :param host: Host name or IP address given by the user.
        :param user_port: Port given by the user, always wins over a SRV port.
        :raises HostUnreachable: if the final host does not resolve
        """
        attempt = await self.attempt_srv(query_type, host)
        if attempt.status is SrvStatus.FOUND:
            record = attempt.record
            if user_port is not None:
                return ResolvedEndpoint(record.target, user_port, False)
            return ResolvedEndpoint(record.target, record.port, True)

        try:
            await self.lookup.resolve_address(host)
        except (LookupFailed, OSError) as e:
            logger.debug("Address lookup for %s failed: %s", host, e)
            raise HostUnreachable(host) from e

        return ResolvedEndpoint(host, user_port, False)

    async def attempt_srv(self, query_type: str, host: str) -> SrvAttempt:
        """Look for a usable SRV record. Never raises."""
        prefix = self.srv_prefixes.get(query_type)
        if not prefix:
            return NO_SRV

        name = f"{prefix}.{host}"
        try:
            records = await self.lookup.resolve_srv(name)
            if not records:
                logger.debug("No SRV record for %s", name)
                return NO_SRV

            # First record wins, priority and weight are not compared.
            record = records[0]
            await self.lookup.resolve_address(record.target)
        except Exception as e:
            logger.debug("SRV discovery for %s failed, falling back: %s", name, e)
            return NO_SRV

        logger.debug("SRV record for %s: %s:%d", name, record.target, record.port)
        return SrvAttempt(SrvStatus.FOUND, record)
