"""
Exception classes for the DNS monitor.

All exceptions inherit from DnsMonitorError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class DnsMonitorError(Exception):
    """Base exception for all DNS monitor errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DnsMonitorError):
    """Raised when a domain name or expected record is rejected."""

    pass


class ConflictError(DnsMonitorError):
    """
    Raised when a domain name is already registered to another owner.

    Names are unique across owners; ``domain`` is the canonical name and
    ``owner_id`` the owner whose registration was refused.
    """

    def __init__(self, domain: str, owner_id: int) -> None:
        self.domain = domain
        self.owner_id = owner_id
        super().__init__(
            code="domain_owned",
            message=f"Domain {domain} is already registered to another owner",
            details={"domain": domain, "owner_id": owner_id},
        )


class NotFoundError(DnsMonitorError):
    """
    Raised when a referenced domain or check history row does not exist.

    ``kind`` is "domain" or "check"; the error code is ``<kind>_not_found``
    and the missing id is reported under ``<kind>_id``.
    """

    def __init__(self, kind: str, row_id: int) -> None:
        self.kind = kind
        self.row_id = row_id
        label = "Domain" if kind == "domain" else "Check history"
        super().__init__(
            code=f"{kind}_not_found",
            message=f"{label} {row_id} does not exist",
            details={f"{kind}_id": row_id},
        )


class PersistenceError(DnsMonitorError):
    """Raised when store operations fail (file I/O, HMAC validation)."""

    pass


class TamperingError(PersistenceError):
    """Raised when HMAC validation fails, indicating data tampering."""

    pass


class NotificationError(DnsMonitorError):
    """Raised when the notification channels are misconfigured."""

    pass
