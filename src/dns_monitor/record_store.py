"""
Record Store module for the DNS monitor.

Defines the store operations the monitor consumes (RecordStore) and a
file-backed implementation that keeps domains, expected records, check
history and retrieved records in one HMAC-protected JSON document.
"""

import hashlib
import hmac
import json
from dataclasses import asdict, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from .enums import CheckState
from .exceptions import NotFoundError, PersistenceError, TamperingError
from .models import CheckHistory, Domain, ExpectedRecord, RetrievedRecord


@runtime_checkable
class RecordStore(Protocol):
    """Persistence operations used by the registry, recorder and orchestrator."""

    async def list_domains(self) -> list[Domain]: ...

    async def get_domain(self, domain_id: int) -> Optional[Domain]: ...

    async def get_domain_by_name(self, name: str) -> Optional[Domain]: ...

    async def insert_domain(self, name: str, owner_id: int) -> Domain: ...

    async def list_expected_records(self, domain_id: int) -> list[ExpectedRecord]: ...

    async def find_expected_record(
        self, domain_id: int, record_type: str, record_value: str
    ) -> Optional[ExpectedRecord]: ...

    async def insert_expected_record(
        self, domain_id: int, record_type: str, record_value: str
    ) -> ExpectedRecord: ...

    async def insert_check_history(
        self, domain_id: int, checked_at: str, status: bool
    ) -> CheckHistory: ...

    async def update_check_history_status(self, check_id: int, status: bool) -> CheckHistory: ...

    async def bulk_insert_retrieved_records(
        self, records: list[RetrievedRecord]
    ) -> list[RetrievedRecord]: ...

    async def list_check_history(self, domain_id: Optional[int] = None) -> list[CheckHistory]: ...

    async def list_retrieved_records(self, check_id: int) -> list[RetrievedRecord]: ...


TABLES = ("domains", "expected_records", "check_history", "retrieved_records")


class JsonRecordStore:
    """
    JSON file store with HMAC protection.

    The whole document is rewritten after every mutation. Surrogate ids come
    from per-table sequences stored alongside the rows. Loading a document
    whose HMAC does not match raises TamperingError.
    """

    VERSION = 1

    def __init__(self, file_path: Path, hmac_secret: str, autosave: bool = True) -> None:
        """
        Initialize the store.

        Args:
            file_path: Path to the JSON document
            hmac_secret: Secret key for HMAC computation
            autosave: Write the document after every mutation
        """
        self._file_path = Path(file_path)
        self._hmac_secret = hmac_secret.encode("utf-8")
        self._autosave = autosave
        self._loaded = False
        self._sequences: dict[str, int] = {table: 0 for table in TABLES}
        self._domains: dict[int, Domain] = {}
        self._expected: dict[int, ExpectedRecord] = {}
        self._history: dict[int, CheckHistory] = {}
        self._retrieved: dict[int, RetrievedRecord] = {}

    @property
    def file_path(self) -> Path:
        return self._file_path

    def load(self) -> bool:
        """
        Load the document from disk and validate its HMAC.

        Returns:
            True if a document was loaded, False if the file does not exist

        Raises:
            TamperingError: If HMAC validation fails
            PersistenceError: If the file cannot be read or parsed
        """
        self._loaded = True
        if not self._file_path.exists():
            return False

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Failed to parse store file: {e}",
                details={"file_path": str(self._file_path)},
            )
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read store file: {e}",
                details={"file_path": str(self._file_path)},
            )

        stored_hmac = raw_data.pop("hmac", "")
        if not hmac.compare_digest(stored_hmac, self.compute_hmac(raw_data)):
            raise TamperingError(
                code="hmac_mismatch",
                message="HMAC validation failed - store may have been tampered with",
                details={"file_path": str(self._file_path)},
            )

        try:
            self._sequences = {table: int(raw_data["sequences"][table]) for table in TABLES}
            self._domains = {row["id"]: Domain(**row) for row in raw_data["domains"]}
            self._expected = {
                row["id"]: ExpectedRecord(**row) for row in raw_data["expected_records"]
            }
            self._history = {
                row["id"]: CheckHistory(
                    id=row["id"],
                    domain_id=row["domain_id"],
                    checked_at=row["checked_at"],
                    status=row["status"],
                    state=CheckState(row["state"]),
                )
                for row in raw_data["check_history"]
            }
            self._retrieved = {
                row["id"]: RetrievedRecord(**row) for row in raw_data["retrieved_records"]
            }
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(
                code="schema_error",
                message=f"Store file has an unexpected layout: {e}",
                details={"file_path": str(self._file_path)},
            )
        return True

    def save(self) -> None:
        """
        Write the document to disk with a fresh HMAC.

        Raises:
            PersistenceError: If the file cannot be written
        """
        data = self._serialize()
        data["hmac"] = self.compute_hmac(data)

        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._file_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write store file: {e}",
                details={"file_path": str(self._file_path)},
            )

    def compute_hmac(self, data: dict) -> str:
        """HMAC-SHA256 over the canonical JSON serialization of ``data``."""
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hmac.new(self._hmac_secret, serialized.encode("utf-8"), hashlib.sha256).hexdigest()

    async def list_domains(self) -> list[Domain]:
        self._ensure_loaded()
        return sorted(self._domains.values(), key=lambda d: d.name)

    async def get_domain(self, domain_id: int) -> Optional[Domain]:
        self._ensure_loaded()
        return self._domains.get(domain_id)

    async def get_domain_by_name(self, name: str) -> Optional[Domain]:
        self._ensure_loaded()
        for domain in self._domains.values():
            if domain.name == name:
                return domain
        return None

    async def insert_domain(self, name: str, owner_id: int) -> Domain:
        self._ensure_loaded()
        now = _now()
        domain = Domain(
            id=self._next_id("domains"),
            name=name,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        self._domains[domain.id] = domain
        self._commit()
        return domain

    async def list_expected_records(self, domain_id: int) -> list[ExpectedRecord]:
        self._ensure_loaded()
        return [r for r in self._expected.values() if r.domain_id == domain_id]

    async def find_expected_record(
        self, domain_id: int, record_type: str, record_value: str
    ) -> Optional[ExpectedRecord]:
        self._ensure_loaded()
        for record in self._expected.values():
            if (
                record.domain_id == domain_id
                and record.record_type == record_type
                and record.record_value == record_value
            ):
                return record
        return None

    async def insert_expected_record(
        self, domain_id: int, record_type: str, record_value: str
    ) -> ExpectedRecord:
        self._ensure_loaded()
        self._require_domain(domain_id)
        record = ExpectedRecord(
            id=self._next_id("expected_records"),
            domain_id=domain_id,
            record_type=record_type,
            record_value=record_value,
        )
        self._expected[record.id] = record
        self._commit()
        return record

    async def insert_check_history(
        self, domain_id: int, checked_at: str, status: bool
    ) -> CheckHistory:
        self._ensure_loaded()
        self._require_domain(domain_id)
        check = CheckHistory(
            id=self._next_id("check_history"),
            domain_id=domain_id,
            checked_at=checked_at,
            status=status,
            state=CheckState.PENDING,
        )
        self._history[check.id] = check
        self._commit()
        return replace(check)

    async def update_check_history_status(self, check_id: int, status: bool) -> CheckHistory:
        self._ensure_loaded()
        check = self._history.get(check_id)
        if check is None:
            raise NotFoundError("check", check_id)
        check.status = status
        check.state = CheckState.FINALIZED
        self._commit()
        return replace(check)

    async def bulk_insert_retrieved_records(
        self, records: list[RetrievedRecord]
    ) -> list[RetrievedRecord]:
        self._ensure_loaded()
        inserted = []
        for record in records:
            if record.check_id not in self._history:
                raise NotFoundError("check", record.check_id)
            row = replace(record, id=self._next_id("retrieved_records"))
            self._retrieved[row.id] = row
            inserted.append(row)
        if inserted:
            self._commit()
        return inserted

    async def list_check_history(self, domain_id: Optional[int] = None) -> list[CheckHistory]:
        self._ensure_loaded()
        rows = [
            replace(
                check,
                domain_name=self._domains[check.domain_id].name
                if check.domain_id in self._domains
                else None,
            )
            for check in self._history.values()
            if domain_id is None or check.domain_id == domain_id
        ]
        return sorted(rows, key=lambda c: (c.checked_at, c.id), reverse=True)

    async def list_retrieved_records(self, check_id: int) -> list[RetrievedRecord]:
        self._ensure_loaded()
        rows = [r for r in self._retrieved.values() if r.check_id == check_id]
        return sorted(rows, key=lambda r: (r.record_type, r.id))

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _require_domain(self, domain_id: int) -> None:
        if domain_id not in self._domains:
            raise NotFoundError("domain", domain_id)

    def _next_id(self, table: str) -> int:
        self._sequences[table] += 1
        return self._sequences[table]

    def _commit(self) -> None:
        if self._autosave:
            self.save()

    def _serialize(self) -> dict:
        history_rows = []
        for check in self._history.values():
            row = asdict(check)
            row.pop("domain_name")
            row["state"] = check.state.value
            history_rows.append(row)
        return {
            "version": self.VERSION,
            "sequences": dict(self._sequences),
            "domains": [asdict(d) for d in self._domains.values()],
            "expected_records": [asdict(r) for r in self._expected.values()],
            "check_history": history_rows,
            "retrieved_records": [asdict(r) for r in self._retrieved.values()],
        }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
