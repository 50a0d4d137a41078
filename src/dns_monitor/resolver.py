"""
Resolver Adapter for the DNS monitor.

Wraps dnspython's asynchronous resolver and exposes one lookup per record
kind. Lookups fail soft: NXDOMAIN, no-answer, timeouts and malformed
responses collapse into an empty list (None for SOA) and are never raised
to the caller. A domain may legitimately lack some record kinds, and one
missing kind must not abort the snapshot.

Derived lookups that need to tell "failed" apart from "empty" use
``query_txt``, which returns a tagged LookupOutcome instead.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, runtime_checkable

import dns.asyncresolver
import dns.exception
import dns.resolver
import dns.reversename

from .config import ResolverConfig
from .models import MxRecord, SoaRecord, SrvRecord

if TYPE_CHECKING:
    from .audit_logger import AuditLogger


@dataclass
class LookupOutcome:
    """Tagged result of a single resolver query."""

    values: list[Any] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, error: str) -> "LookupOutcome":
        return cls(values=[], error=error)


@runtime_checkable
class DnsResolver(Protocol):
    """Lookup operations the collector relies on."""

    async def lookup_a(self, name: str) -> list[str]: ...

    async def lookup_aaaa(self, name: str) -> list[str]: ...

    async def lookup_cname(self, name: str) -> list[str]: ...

    async def lookup_mx(self, name: str) -> list[MxRecord]: ...

    async def lookup_txt(self, name: str) -> list[list[str]]: ...

    async def lookup_ns(self, name: str) -> list[str]: ...

    async def lookup_soa(self, name: str) -> Optional[SoaRecord]: ...

    async def lookup_srv(self, name: str) -> list[SrvRecord]: ...

    async def lookup_ptr(self, address: str) -> list[str]: ...

    async def query_txt(self, name: str) -> LookupOutcome: ...


def _host(name) -> str:
    return name.to_text(omit_final_dot=True)


def _parse_txt(rdata) -> list[str]:
    return [chunk.decode("utf-8", errors="replace") for chunk in rdata.strings]


def _parse_mx(rdata) -> MxRecord:
    return MxRecord(exchange=_host(rdata.exchange), priority=int(rdata.preference))


def _parse_soa(rdata) -> SoaRecord:
    return SoaRecord(
        nsname=_host(rdata.mname),
        hostmaster=_host(rdata.rname),
        serial=int(rdata.serial),
        refresh=int(rdata.refresh),
        retry=int(rdata.retry),
        expire=int(rdata.expire),
        minttl=int(rdata.minimum),
    )


def _parse_srv(rdata) -> SrvRecord:
    return SrvRecord(
        priority=int(rdata.priority),
        weight=int(rdata.weight),
        port=int(rdata.port),
        name=_host(rdata.target),
    )


# rdtype -> converter from one rdata to the snapshot representation
RDATA_PARSERS: dict[str, Callable[[Any], Any]] = {
    "A": lambda rdata: rdata.address,
    "AAAA": lambda rdata: rdata.address,
    "CNAME": lambda rdata: _host(rdata.target),
    "MX": _parse_mx,
    "TXT": _parse_txt,
    "NS": lambda rdata: _host(rdata.target),
    "SOA": _parse_soa,
    "SRV": _parse_srv,
    "PTR": lambda rdata: _host(rdata.target),
}


class ResolverAdapter:
    """
    dnspython-backed implementation of DnsResolver.

    Every query is bounded by ``ResolverConfig.timeout_seconds`` through the
    resolver lifetime. A timeout is one more failure that collapses into an
    empty result.
    """

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        resolver: Optional[dns.asyncresolver.Resolver] = None,
        logger: Optional["AuditLogger"] = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            config: Resolver configuration (nameservers, timeout, SRV prefix)
            resolver: Optional pre-built dnspython resolver
            logger: Optional audit logger for failed lookups
        """
        self._config = config or ResolverConfig()
        self._resolver = resolver
        self._logger = logger

    @property
    def config(self) -> ResolverConfig:
        return self._config

    def _get_resolver(self) -> dns.asyncresolver.Resolver:
        if self._resolver is None:
            if self._config.nameservers:
                resolver = dns.asyncresolver.Resolver(configure=False)
                resolver.nameservers = list(self._config.nameservers)
            else:
                resolver = dns.asyncresolver.Resolver()
            resolver.timeout = self._config.timeout_seconds
            resolver.lifetime = self._config.timeout_seconds
            self._resolver = resolver
        return self._resolver

    async def query(self, name: str, rdtype: str) -> LookupOutcome:
        """
        Resolve ``name`` for ``rdtype`` and convert the answer.

        Never raises; failures are returned as LookupOutcome.failed. A name
        that exists but has no records of ``rdtype`` is an empty, successful
        outcome.
        """
        parser = RDATA_PARSERS[rdtype]
        try:
            answer = await self._get_resolver().resolve(
                name, rdtype, lifetime=self._config.timeout_seconds
            )
            return LookupOutcome(values=[parser(rdata) for rdata in answer])
        except dns.resolver.NXDOMAIN:
            return self._failure(name, rdtype, "nxdomain")
        except dns.resolver.NoAnswer:
            return LookupOutcome(values=[])
        except dns.exception.Timeout:
            return self._failure(name, rdtype, "timeout")
        except dns.exception.DNSException as e:
            return self._failure(name, rdtype, f"dns_error: {e}")
        except Exception as e:
            return self._failure(name, rdtype, f"{type(e).__name__}: {e}")

    def _failure(self, name: str, rdtype: str, error: str) -> LookupOutcome:
        if self._logger:
            self._logger.debug(
                "ResolverAdapter",
                f"{rdtype} lookup failed for {name}",
                {"name": name, "rdtype": rdtype, "error": error},
            )
        return LookupOutcome.failed(error)

    async def lookup_a(self, name: str) -> list[str]:
        return (await self.query(name, "A")).values

    async def lookup_aaaa(self, name: str) -> list[str]:
        return (await self.query(name, "AAAA")).values

    async def lookup_cname(self, name: str) -> list[str]:
        return (await self.query(name, "CNAME")).values

    async def lookup_mx(self, name: str) -> list[MxRecord]:
        return (await self.query(name, "MX")).values

    async def lookup_txt(self, name: str) -> list[list[str]]:
        return (await self.query_txt(name)).values

    async def query_txt(self, name: str) -> LookupOutcome:
        return await self.query(name, "TXT")

    async def lookup_ns(self, name: str) -> list[str]:
        return (await self.query(name, "NS")).values

    async def lookup_soa(self, name: str) -> Optional[SoaRecord]:
        outcome = await self.query(name, "SOA")
        return outcome.values[0] if outcome.values else None

    async def lookup_srv(self, name: str) -> list[SrvRecord]:
        """SRV records of the fixed service probe, ``_sip._tcp.<name>`` by default."""
        return (await self.query(f"{self._config.srv_prefix}{name}", "SRV")).values

    async def lookup_ptr(self, address: str) -> list[str]:
        """Reverse lookup of an IPv4/IPv6 address."""
        try:
            reverse_name = dns.reversename.from_address(address)
        except (dns.exception.SyntaxError, ValueError) as e:
            self._failure(address, "PTR", f"invalid_address: {e}")
            return []
        return (await self.query(reverse_name.to_text(), "PTR")).values
