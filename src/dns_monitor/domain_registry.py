"""
Domain registry for the DNS monitor.

Registers domains and their expected records. Names are canonicalized and
globally unique: re-registering a name for its owner returns the existing
domain, registering it for anyone else is a conflict. Expected records are
never mutated; an identical domain+kind+value is coalesced to the existing
row.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .domain_validator import DomainValidator
from .exceptions import ConflictError, NotFoundError
from .models import Domain, ExpectedRecord
from .record_store import RecordStore

if TYPE_CHECKING:
    from .audit_logger import AuditLogger


@dataclass
class RegistrationResult:
    domain: Domain
    expected_record: ExpectedRecord


class DomainRegistry:
    """Operator-facing registration of domains and expectations."""

    def __init__(
        self,
        store: RecordStore,
        validator: Optional[DomainValidator] = None,
        logger: Optional["AuditLogger"] = None,
    ) -> None:
        self._store = store
        self._validator = validator or DomainValidator()
        self._logger = logger

    async def register_domain(self, name: str, owner_id: int) -> Domain:
        """
        Register a domain for an owner.

        Raises:
            ValidationError: If the name is malformed
            ConflictError: If the name belongs to a different owner
        """
        result = self._validator.validate(name)
        if not result.valid:
            raise result.error.to_exception()
        canonical = result.canonical_domain

        existing = await self._store.get_domain_by_name(canonical)
        if existing is not None:
            if existing.owner_id != owner_id:
                raise ConflictError(canonical, owner_id)
            return existing

        domain = await self._store.insert_domain(canonical, owner_id)
        if self._logger:
            self._logger.info(
                "DomainRegistry",
                f"Registered domain {canonical}",
                {"domain_id": domain.id, "owner_id": owner_id},
            )
        return domain

    async def add_expected_record(
        self, domain_id: int, record_type: str, record_value: str
    ) -> ExpectedRecord:
        """
        Add an expectation to a domain, coalescing exact duplicates.

        Raises:
            ValidationError: If the kind is unknown or the value is empty
            NotFoundError: If the domain does not exist
        """
        kind = self._validator.validate_record_type(record_type)
        value = self._validator.validate_record_value(record_value)

        if await self._store.get_domain(domain_id) is None:
            raise NotFoundError("domain", domain_id)

        existing = await self._store.find_expected_record(domain_id, kind.value, value)
        if existing is not None:
            return existing

        record = await self._store.insert_expected_record(domain_id, kind.value, value)
        if self._logger:
            self._logger.info(
                "DomainRegistry",
                f"Added expected {kind.value} record",
                {"domain_id": domain_id, "record_id": record.id, "record_value": value},
            )
        return record

    async def add_domain_with_expected_record(
        self,
        name: str,
        record_type: str,
        record_value: str,
        owner_id: int,
    ) -> RegistrationResult:
        # Validate the record before creating a domain for it
        self._validator.validate_record_type(record_type)
        self._validator.validate_record_value(record_value)
        domain = await self.register_domain(name, owner_id)
        record = await self.add_expected_record(domain.id, record_type, record_value)
        return RegistrationResult(domain=domain, expected_record=record)

    async def list_domains(self) -> list[Domain]:
        return await self._store.list_domains()

    async def list_domain_names(self) -> list[str]:
        return [domain.name for domain in await self._store.list_domains()]

    async def get_domain_by_name(self, name: str) -> Optional[Domain]:
        result = self._validator.validate(name)
        if not result.valid:
            return None
        return await self._store.get_domain_by_name(result.canonical_domain)
