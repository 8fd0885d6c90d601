from dataclasses import dataclass, field
from typing import Any

import pytest

from hypeserv.endpoint import EndpointResolver
from hypeserv.errors import LookupFailed
from hypeserv.lookup import SrvRecord


@dataclass
class FakeLookup:
    """In-memory stand-in for DnsLookup."""

    srv: dict[str, list[SrvRecord]] = field(default_factory=dict)
    """service name -> records"""
    addresses: dict[str, list[str]] = field(default_factory=dict)
    """host name -> addresses"""
    srv_errors: dict[str, Exception] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)

    async def resolve_srv(self, name: str) -> list[SrvRecord]:
        self.calls.append(("SRV", name))
        if name in self.srv_errors:
            raise self.srv_errors[name]
        return list(self.srv.get(name, []))

    async def resolve_address(self, name: str) -> list[str]:
        self.calls.append(("ADDR", name))
        if name not in self.addresses:
            raise LookupFailed(f"{name} has no A or AAAA record")
        return self.addresses[name]

    @property
    def srv_calls(self) -> list[str]:
        return [name for kind, name in self.calls if kind == "SRV"]


@dataclass
class FakeQuery:
    """Records the options it was called with and answers with `result`."""

    result: Any = field(default_factory=lambda: {"name": "A server", "raw": {"vanilla": True}})
    error: Exception | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def __call__(self, options):
        self.calls.append(dict(options))
        if self.error is not None:
            raise self.error
        return dict(self.result) if isinstance(self.result, dict) else self.result

    @property
    def options(self) -> dict[str, Any]:
        assert len(self.calls) == 1
        return self.calls[0]


@pytest.fixture
def lookup() -> FakeLookup:
    return FakeLookup(
        srv={
            "_minecraft._tcp.play.example.com": [
                SrvRecord("mc1.example.com", 25577, priority=10, weight=5),
                SrvRecord("mc2.example.com", 25578, priority=0, weight=5),
            ],
        },
        addresses={
            "play.example.com": ["203.0.113.10"],
            "mc1.example.com": ["203.0.113.11"],
            "mc2.example.com": ["203.0.113.12"],
            "10.0.0.5": ["10.0.0.5"],
            "::1": ["::1"],
        },
    )


@pytest.fixture
def resolver(lookup: FakeLookup) -> EndpointResolver:
    return EndpointResolver(lookup)


@pytest.fixture
def fake_query() -> FakeQuery:
    return FakeQuery()
