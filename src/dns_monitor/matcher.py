"""
Record Matcher for the DNS monitor.

Decides whether one expected record is satisfied by a DomainSnapshot using
the comparison rule of its record kind:

- A, AAAA, CNAME, NS: exact, case-sensitive membership
- MX: bare exchange host, or "<exchange> (Priority: <priority>)"
- TXT: whitespace-normalized equality against any flattened fragment

Every other kind is unsupported. Such records are not compared: a warning
is logged and the comparison is reported as not matched.
"""

import re
from typing import TYPE_CHECKING, Callable, Optional

from .collector import flatten_txt
from .enums import COMPARABLE_KINDS, RecordKind
from .models import DomainSnapshot, ExpectedRecord, MxRecord, RecordComparison

if TYPE_CHECKING:
    from .audit_logger import AuditLogger


_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_whitespace(value: str) -> str:
    """Collapse whitespace runs to a single space and trim both ends."""
    return _WHITESPACE_RUN.sub(" ", value).strip()


def mx_display(mx: MxRecord) -> str:
    return f"{mx.exchange} (Priority: {mx.priority})"


def match_exact(expected_value: str, actual_values: list[str]) -> bool:
    return expected_value in actual_values


def match_mx(expected_value: str, actual_values: list[MxRecord]) -> bool:
    return any(
        expected_value == mx.exchange or expected_value == mx_display(mx)
        for mx in actual_values
    )


def match_txt(expected_value: str, actual_values: list[list[str]]) -> bool:
    expected = normalize_whitespace(expected_value)
    return any(
        normalize_whitespace(fragment) == expected
        for fragment in flatten_txt(actual_values)
    )


class RecordMatcher:
    """Per-kind comparison of expected records against a snapshot."""

    RULES: dict[RecordKind, Callable] = {
        RecordKind.A: match_exact,
        RecordKind.AAAA: match_exact,
        RecordKind.CNAME: match_exact,
        RecordKind.NS: match_exact,
        RecordKind.MX: match_mx,
        RecordKind.TXT: match_txt,
    }

    def __init__(self, logger: Optional["AuditLogger"] = None) -> None:
        self._logger = logger

    def is_supported(self, record_type: str) -> bool:
        kind = self._parse_kind(record_type)
        return kind is not None and kind in COMPARABLE_KINDS

    def match(self, expected: ExpectedRecord, snapshot: DomainSnapshot) -> RecordComparison:
        """
        Compare one expected record with the snapshot.

        Args:
            expected: The operator-declared record
            snapshot: Resolver output for the record's domain

        Returns:
            RecordComparison carrying the actual values examined
        """
        record_type = expected.record_type.upper()
        kind = self._parse_kind(record_type)

        if kind is None or kind not in self.RULES:
            if self._logger:
                self._logger.warn(
                    "RecordMatcher",
                    f"Unsupported record type: {record_type}",
                    {
                        "record_type": record_type,
                        "expected_value": expected.record_value,
                        "domain_id": expected.domain_id,
                    },
                )
            return RecordComparison(
                record_type=record_type,
                expected_value=expected.record_value,
                actual_values=[],
                matched=False,
                supported=False,
            )

        raw_values = snapshot.get(kind)
        matched = self.RULES[kind](expected.record_value, raw_values)

        return RecordComparison(
            record_type=record_type,
            expected_value=expected.record_value,
            actual_values=snapshot.to_dict()[kind.value],
            matched=matched,
        )

    def _parse_kind(self, record_type: str) -> Optional[RecordKind]:
        try:
            return RecordKind.parse(record_type)
        except ValueError:
            return None
