"""
Input validation for domain registration.

Normalizes domain names to their canonical form (lowercase, IDNA-encoded
for international names), checks label syntax, and validates the record
kind and value of expected records before they reach the store.
"""

import re
from dataclasses import dataclass
from typing import Optional

import idna

from .enums import DomainValidationErrorCode, RecordKind
from .exceptions import ValidationError


FORBIDDEN_CHARS_PATTERN = re.compile(
    r'[\x00-\x1f\x7f'
    r'\s'
    r'!@#$%^&*()+=\[\]{}|\\:;"\'<>,?/`~]'
)

# Dot-separated labels of 1-63 alphanumerics/hyphens, no leading/trailing hyphen
DOMAIN_NAME_PATTERN = re.compile(
    r"^[a-z0-9_]([a-z0-9-]{0,61}[a-z0-9])?(\.[a-z0-9_]([a-z0-9-]{0,61}[a-z0-9])?)*$"
)

MAX_DOMAIN_LENGTH = 253


@dataclass
class NameValidationError:
    """Structured error information for rejected input."""

    code: DomainValidationErrorCode
    message: str
    details: dict

    def to_exception(self) -> ValidationError:
        return ValidationError(code=self.code.value, message=self.message, details=self.details)


@dataclass
class NameValidationResult:
    """Result of validating a domain name."""

    valid: bool
    canonical_domain: Optional[str]
    error: Optional[NameValidationError]


class DomainValidator:
    """Validates and normalizes domain names and expected-record input."""

    def validate(self, raw_domain: str) -> NameValidationResult:
        """
        Validate and normalize a domain string.

        Args:
            raw_domain: The raw domain string to validate

        Returns:
            NameValidationResult with the canonical form or an error
        """
        if not raw_domain or not raw_domain.strip():
            return self._invalid(
                DomainValidationErrorCode.EMPTY_INPUT,
                "Domain input is empty",
                {"raw_input": raw_domain},
            )

        domain = raw_domain.strip().rstrip(".")

        if FORBIDDEN_CHARS_PATTERN.search(domain):
            return self._invalid(
                DomainValidationErrorCode.FORBIDDEN_CHARS,
                "Domain contains forbidden characters",
                {
                    "raw_input": raw_domain,
                    "forbidden_chars": FORBIDDEN_CHARS_PATTERN.findall(domain),
                },
            )

        try:
            canonical = self.normalize_to_canonical(domain)
        except ValidationError as e:
            return self._invalid(DomainValidationErrorCode.IDNA_ERROR, e.message, e.details)

        if len(canonical) > MAX_DOMAIN_LENGTH or not DOMAIN_NAME_PATTERN.match(canonical):
            return self._invalid(
                DomainValidationErrorCode.INVALID_FORMAT,
                "Invalid domain name format",
                {"raw_input": raw_domain, "canonical": canonical},
            )

        return NameValidationResult(valid=True, canonical_domain=canonical, error=None)

    def normalize_to_canonical(self, domain: str) -> str:
        """
        Lowercase the name and IDNA-encode it when it has non-ASCII characters.

        Raises:
            ValidationError: If IDNA encoding fails
        """
        domain_lower = domain.lower()
        if all(ord(c) < 128 for c in domain_lower):
            return domain_lower
        try:
            return idna.encode(domain_lower, uts46=True).decode("ascii")
        except idna.IDNAError as e:
            raise ValidationError(
                code=DomainValidationErrorCode.IDNA_ERROR.value,
                message=f"IDNA encoding failed: {e}",
                details={"domain": domain, "idna_error": str(e)},
            )

    def validate_record_type(self, record_type: str) -> RecordKind:
        """
        Uppercase and whitelist a record kind.

        Raises:
            ValidationError: If the kind is not one of the known record kinds
        """
        try:
            return RecordKind.parse(record_type or "")
        except ValueError:
            raise ValidationError(
                code=DomainValidationErrorCode.INVALID_RECORD_TYPE.value,
                message=f"Invalid record_type. Must be one of: {', '.join(RecordKind.names())}",
                details={"record_type": record_type},
            )

    def validate_record_value(self, record_value: str) -> str:
        """Reject empty expected values; the value itself is stored verbatim."""
        if record_value is None or not record_value.strip():
            raise ValidationError(
                code=DomainValidationErrorCode.EMPTY_RECORD_VALUE.value,
                message="Expected record value is empty",
                details={"record_value": record_value},
            )
        return record_value

    def _invalid(
        self, code: DomainValidationErrorCode, message: str, details: dict
    ) -> NameValidationResult:
        return NameValidationResult(
            valid=False,
            canonical_domain=None,
            error=NameValidationError(code=code, message=message, details=details),
        )
