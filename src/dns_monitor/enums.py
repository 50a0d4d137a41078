"""
Enumeration types for the DNS monitor.

These enums provide type-safe constants for record kinds, validation
verdicts, check lifecycle states and logging levels.
"""

from enum import Enum


class RecordKind(Enum):
    """DNS record categories understood by the monitor."""

    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    MX = "MX"
    TXT = "TXT"
    NS = "NS"
    SOA = "SOA"
    SRV = "SRV"
    PTR = "PTR"
    SPF = "SPF"
    DKIM = "DKIM"
    DMARC = "DMARC"

    @classmethod
    def parse(cls, value: str) -> "RecordKind":
        """Parse a record kind case-insensitively. Raises ValueError if unknown."""
        return cls(value.strip().upper())

    @classmethod
    def names(cls) -> list[str]:
        return [kind.value for kind in cls]


# Kinds the matcher has comparison rules for
COMPARABLE_KINDS = frozenset({
    RecordKind.A,
    RecordKind.AAAA,
    RecordKind.CNAME,
    RecordKind.MX,
    RecordKind.TXT,
    RecordKind.NS,
})


class DkimSelector(Enum):
    """Common DKIM selectors probed under _domainkey, in probe order."""

    DEFAULT = "default"
    GOOGLE = "google"
    SELECTOR1 = "selector1"
    SELECTOR2 = "selector2"
    K1 = "k1"
    DKIM = "dkim"
    MAIL = "mail"


class ValidationStatus(Enum):
    """Per-domain verdict of a validation pass."""

    SUCCESS = "success"
    FAILED = "failed"
    NO_EXPECTATIONS = "no_expectations"
    ERROR = "error"


class CheckState(Enum):
    """Lifecycle of a check history row in the two-phase write."""

    PENDING = "pending"
    FINALIZED = "finalized"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _LEVEL_RANKS[self]


_LEVEL_RANKS = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}


class DomainValidationErrorCode(Enum):
    """Error codes for domain name and record input validation."""

    EMPTY_INPUT = "empty_input"
    FORBIDDEN_CHARS = "forbidden_chars"
    INVALID_FORMAT = "invalid_format"
    IDNA_ERROR = "idna_error"
    INVALID_RECORD_TYPE = "invalid_record_type"
    EMPTY_RECORD_VALUE = "empty_record_value"
