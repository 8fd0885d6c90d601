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
import contextlib
import ipaddress
import logging
from dataclasses import dataclass

import dns.asyncresolver
import dns.exception
import dns.resolver
import idna

from .errors import LookupFailed

logger = logging.getLogger(__name__)

LOOPBACK_ADDRESSES = ("127.0.0.1", "::1")


@dataclass(frozen=True)
class SrvRecord:
    target: str
    """target host name, without the trailing dot"""
    port: int
    priority: int = 0
    weight: int = 0


def is_ip_address(address: str) -> bool:
    """Whether `address` is an IPv4 or IPv6 literal (zone index allowed)."""
    try:
        ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return False
    return True


def to_ascii(name: str) -> str:
    """
    Convert a (possibly internationalized) DNS name to its ASCII form.

    Service labels such as `_minecraft` are passed through untouched,
    idna refuses the underscore.
    """
    name = name.rstrip(".")
    if name.isascii():
        return name
    try:
        return ".".join(
            label if label.startswith("_") else idna.encode(label).decode("ascii")
            for label in name.split(".")
        )
    except idna.IDNAError as e:
        raise LookupFailed(f"Invalid domain name {name!r}: {e}") from e


class DnsLookup:
    """SRV and A/AAAA lookups backed by dnspython's async resolver."""

    DEFAULT_TIMEOUT = 10
    """default lifetime of a single DNS query in seconds"""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        resolver: dns.asyncresolver.Resolver | None = None,
    ) -> None:
        if resolver is None:
            resolver = dns.asyncresolver.Resolver()
        resolver.lifetime = timeout
        self.resolver = resolver

    async def resolve_srv(self, name: str) -> list[SrvRecord]:
        """
        Resolve the SRV records published for `name`.

        :param name: Full service name, e.g. `_minecraft._tcp.example.com`
        :return: The records in the order the resolver returned them, empty if none exist.
        """
        qname = to_ascii(name)
        try:
            answer = await self.resolver.resolve(qname, "SRV")
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            return []
        except dns.exception.DNSException as e:
            raise LookupFailed(f"SRV lookup for {qname} failed: {e}") from e

        return [
            SrvRecord(
                target=str(rdata.target).rstrip("."),
                port=rdata.port,
                priority=rdata.priority,
                weight=rdata.weight,
            )
            for rdata in answer
        ]

    async def resolve_address(self, name: str) -> list[str]:
        """
        Resolve the A and AAAA records of `name`.

        IP literals are returned as they are, no query is sent for them.

        :raises LookupFailed: if neither an A nor an AAAA record exists
        """
        if is_ip_address(name):
            return [name]
        if name.lower() == "localhost":
            return list(LOOPBACK_ADDRESSES)

        qname = to_ascii(name)
        addresses: list[str] = []

        async def resolve(rdtype: str) -> None:
            with contextlib.suppress(
                dns.resolver.NoAnswer, dns.resolver.NXDOMAIN, dns.exception.Timeout
            ):
                response = await self.resolver.resolve(qname, rdtype)
                addresses.extend(str(rdata.address) for rdata in response)

        try:
            await asyncio.gather(resolve("A"), resolve("AAAA"))
        except dns.exception.DNSException as e:
            raise LookupFailed(f"Address lookup for {qname} failed: {e}") from e

        if not addresses:
            raise LookupFailed(f"{qname} has no A or AAAA record")
        logger.debug("%s resolved to %s", qname, ", ".join(addresses))
        return addresses
