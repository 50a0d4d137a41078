"""
Domain Record Collector for the DNS monitor.

Runs every per-kind lookup for one domain and combines the answers into a
DomainSnapshot. Direct lookups are issued concurrently; the derived kinds
(PTR, SPF, DKIM, DMARC) are small functions over already-fetched data plus
at most one extra query each. Partial data is valid output: no individual
lookup failure turns into an error.
"""

import asyncio
from typing import TYPE_CHECKING, Optional

from .enums import DkimSelector
from .models import DkimRecord, DomainSnapshot
from .resolver import DnsResolver, LookupOutcome

if TYPE_CHECKING:
    from .audit_logger import AuditLogger


SPF_PREFIX = "v=spf1"
DMARC_PREFIX = "v=DMARC1"
DMARC_LABEL = "_dmarc"
DKIM_LABEL = "_domainkey"


def flatten_txt(records: list[list[str]]) -> list[str]:
    """Flatten TXT records into their individual character-string fragments."""
    return [fragment for record in records for fragment in record]


def filter_prefix(records: list[list[str]], prefix: str) -> list[str]:
    return [fragment for fragment in flatten_txt(records) if fragment.startswith(prefix)]


def parent_zone(domain: str) -> str:
    """The registrable parent zone: the last two dot-separated labels."""
    return ".".join(domain.rstrip(".").split(".")[-2:])


class DomainRecordCollector:
    """Builds one DomainSnapshot per domain name."""

    DKIM_SELECTORS = tuple(selector.value for selector in DkimSelector)

    def __init__(
        self,
        resolver: DnsResolver,
        logger: Optional["AuditLogger"] = None,
    ) -> None:
        self._resolver = resolver
        self._logger = logger

    async def collect(self, domain: str) -> DomainSnapshot:
        """
        Resolve all twelve record kinds for ``domain``.

        Args:
            domain: Fully-qualified domain name

        Returns:
            DomainSnapshot with every kind present, possibly empty
        """
        (
            a_records,
            aaaa_records,
            cname_records,
            mx_records,
            txt_outcome,
            ns_records,
            soa_record,
            srv_records,
            dkim_records,
            dmarc_records,
        ) = await asyncio.gather(
            self._resolver.lookup_a(domain),
            self._resolver.lookup_aaaa(domain),
            self._resolver.lookup_cname(domain),
            self._resolver.lookup_mx(domain),
            self._resolver.query_txt(domain),
            self._resolver.lookup_ns(domain),
            self._resolver.lookup_soa(domain),
            self._resolver.lookup_srv(domain),
            self.collect_dkim(domain),
            self.collect_dmarc(domain),
        )

        ptr_records, spf_records = await asyncio.gather(
            self.collect_ptr(a_records),
            self.collect_spf(domain, txt_outcome),
        )

        snapshot = DomainSnapshot(
            a=a_records,
            aaaa=aaaa_records,
            cname=cname_records,
            mx=mx_records,
            txt=txt_outcome.values if txt_outcome.ok else [],
            ns=ns_records,
            soa=soa_record,
            srv=srv_records,
            ptr=ptr_records,
            spf=spf_records,
            dkim=dkim_records,
            dmarc=dmarc_records,
        )

        if self._logger:
            self._logger.debug(
                "DomainRecordCollector",
                f"Collected DNS snapshot for {domain}",
                {
                    "domain": domain,
                    "non_empty_kinds": [
                        kind for kind, value in snapshot.to_dict().items() if value
                    ],
                },
            )
        return snapshot

    async def collect_ptr(self, a_records: list[str]) -> list[str]:
        """Reverse lookup of the first A record; empty without any A record."""
        if not a_records:
            return []
        return await self._resolver.lookup_ptr(a_records[0])

    async def collect_spf(self, domain: str, txt_outcome: LookupOutcome) -> list[str]:
        """
        SPF policies published as TXT.

        Uses the domain's own TXT answer when that query succeeded. When it
        failed, the parent zone's TXT records are queried instead.
        """
        if txt_outcome.ok:
            return filter_prefix(txt_outcome.values, SPF_PREFIX)

        fallback = parent_zone(domain)
        if fallback == domain.rstrip("."):
            return []
        outcome = await self._resolver.query_txt(fallback)
        if not outcome.ok:
            return []
        return filter_prefix(outcome.values, SPF_PREFIX)

    async def collect_dkim(self, domain: str) -> list[DkimRecord]:
        """
        Probe every common selector under ``_domainkey``.

        All selectors are attempted; a failing selector is skipped and the
        order of the result follows DKIM_SELECTORS.
        """
        outcomes = await asyncio.gather(
            *(
                self._resolver.query_txt(f"{selector}.{DKIM_LABEL}.{domain}")
                for selector in self.DKIM_SELECTORS
            ),
            return_exceptions=True,
        )
        return [
            DkimRecord(selector=selector, record=flatten_txt(outcome.values))
            for selector, outcome in zip(self.DKIM_SELECTORS, outcomes)
            if isinstance(outcome, LookupOutcome) and outcome.ok and outcome.values
        ]

    async def collect_dmarc(self, domain: str) -> list[str]:
        outcome = await self._resolver.query_txt(f"{DMARC_LABEL}.{domain}")
        return filter_prefix(outcome.values, DMARC_PREFIX)
