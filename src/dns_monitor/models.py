"""
Data models for the DNS monitor.

This module defines the stored entities (domains, expected records, check
history, retrieved records), the in-memory snapshot produced by the
collector, and the validation results handed back to callers.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .enums import CheckState, RecordKind, ValidationStatus


@dataclass
class Domain:
    """A registered domain."""

    id: int
    name: str  # canonical form, unique
    owner_id: int
    created_at: str
    updated_at: str


@dataclass
class ExpectedRecord:
    """An operator-declared kind+value pair a domain is compared against."""

    id: int
    domain_id: int
    record_type: str  # uppercased RecordKind value
    record_value: str


@dataclass
class CheckHistory:
    """One validation attempt for one domain."""

    id: int
    domain_id: int
    checked_at: str
    status: bool = False
    state: CheckState = CheckState.PENDING
    domain_name: Optional[str] = None  # filled when listed with the domain joined


@dataclass
class RetrievedRecord:
    """One individual value found during a check."""

    id: int
    check_id: int
    domain_id: int
    record_type: str
    record_value: str


@dataclass
class MxRecord:
    exchange: str
    priority: int


@dataclass
class SrvRecord:
    priority: int
    weight: int
    port: int
    name: str


@dataclass
class SoaRecord:
    nsname: str
    hostmaster: str
    serial: int
    refresh: int
    retry: int
    expire: int
    minttl: int


@dataclass
class DkimRecord:
    """A TXT record found under <selector>._domainkey."""

    selector: str
    record: list[str]


@dataclass
class DomainSnapshot:
    """
    Resolver output for every record kind of one domain.

    Produced fresh by each collection. Kinds without data are empty
    lists, or None for SOA.
    """

    a: list[str] = field(default_factory=list)
    aaaa: list[str] = field(default_factory=list)
    cname: list[str] = field(default_factory=list)
    mx: list[MxRecord] = field(default_factory=list)
    txt: list[list[str]] = field(default_factory=list)
    ns: list[str] = field(default_factory=list)
    soa: Optional[SoaRecord] = None
    srv: list[SrvRecord] = field(default_factory=list)
    ptr: list[str] = field(default_factory=list)
    spf: list[str] = field(default_factory=list)
    dkim: list[DkimRecord] = field(default_factory=list)
    dmarc: list[str] = field(default_factory=list)

    def get(self, kind: RecordKind) -> Any:
        """Return the raw value stored for a record kind."""
        return getattr(self, kind.value.lower())

    def to_dict(self) -> dict:
        """Mapping of record kind name to JSON-compatible resolver output."""
        return {
            "A": list(self.a),
            "AAAA": list(self.aaaa),
            "CNAME": list(self.cname),
            "MX": [{"exchange": mx.exchange, "priority": mx.priority} for mx in self.mx],
            "TXT": [list(fragments) for fragments in self.txt],
            "NS": list(self.ns),
            "SOA": _soa_to_dict(self.soa) if self.soa else None,
            "SRV": [
                {
                    "priority": srv.priority,
                    "weight": srv.weight,
                    "port": srv.port,
                    "name": srv.name,
                }
                for srv in self.srv
            ],
            "PTR": list(self.ptr),
            "SPF": list(self.spf),
            "DKIM": [
                {"selector": dkim.selector, "record": list(dkim.record)}
                for dkim in self.dkim
            ],
            "DMARC": list(self.dmarc),
        }


def _soa_to_dict(soa: SoaRecord) -> dict:
    return {
        "nsname": soa.nsname,
        "hostmaster": soa.hostmaster,
        "serial": soa.serial,
        "refresh": soa.refresh,
        "retry": soa.retry,
        "expire": soa.expire,
        "minttl": soa.minttl,
    }


@dataclass
class RecordComparison:
    """Outcome of comparing one expected record against a snapshot."""

    record_type: str
    expected_value: str
    actual_values: list[Any]
    matched: bool = False
    supported: bool = True

    def to_dict(self) -> dict:
        return {
            "record_type": self.record_type,
            "expected_value": self.expected_value,
            "actual_values": self.actual_values,
            "matched": self.matched,
        }


@dataclass
class ValidationFailure:
    """A mismatched expected record, as reported to the notifier."""

    domain: str
    record_type: str
    expected_value: str
    actual_values: list[Any]

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "record_type": self.record_type,
            "expected_value": self.expected_value,
            "actual_values": self.actual_values,
        }


@dataclass
class DomainValidationResult:
    """Verdict for one domain in a validation pass."""

    domain: str
    domain_id: int
    status: ValidationStatus
    overall_match: Optional[bool] = None
    validation_details: Optional[list[RecordComparison]] = None
    history_id: Optional[int] = None
    message: Optional[str] = None
    error: Optional[str] = None

    def failures(self) -> list[ValidationFailure]:
        """Mismatched comparisons of this domain."""
        return [
            ValidationFailure(
                domain=self.domain,
                record_type=detail.record_type,
                expected_value=detail.expected_value,
                actual_values=detail.actual_values,
            )
            for detail in self.validation_details or []
            if not detail.matched
        ]

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "domain": self.domain,
            "domain_id": self.domain_id,
            "status": self.status.value,
        }
        if self.overall_match is not None:
            result["overall_match"] = self.overall_match
        if self.validation_details is not None:
            result["validation_details"] = [d.to_dict() for d in self.validation_details]
        if self.history_id is not None:
            result["history_id"] = self.history_id
        if self.message is not None:
            result["message"] = self.message
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class ValidationSummary:
    """Aggregate result of validating all registered domains."""

    total_domains: int
    results: list[DomainValidationResult] = field(default_factory=list)
    notification_sent: bool = False

    def failures(self) -> list[ValidationFailure]:
        failures: list[ValidationFailure] = []
        for result in self.results:
            failures.extend(result.failures())
        return failures

    def to_dict(self) -> dict:
        return {
            "totalDomains": self.total_domains,
            "results": [r.to_dict() for r in self.results],
        }
