"""
Audit Recorder for the DNS monitor.

Persists what every check saw. A check is written in two phases: the
history row is inserted as pending with status False before any comparison,
and finalized with the overall verdict afterwards. The snapshot is
flattened into one RetrievedRecord row per individual value, tagged with
the check id from the first phase.

The two phases are not atomic. A crash between them leaves a pending row
whose status is still False; the ``state`` field makes that visible.
"""

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from .enums import RecordKind
from .models import (
    CheckHistory,
    DkimRecord,
    Domain,
    DomainSnapshot,
    MxRecord,
    RetrievedRecord,
    SoaRecord,
    SrvRecord,
)
from .record_store import RecordStore

if TYPE_CHECKING:
    from .audit_logger import AuditLogger


def serialize_mx(mx: MxRecord) -> str:
    return f"{mx.priority} {mx.exchange}"


def serialize_srv(srv: SrvRecord) -> str:
    return f"{srv.priority} {srv.weight} {srv.port} {srv.name}"


def serialize_soa(soa: SoaRecord) -> str:
    return json.dumps(
        {
            "nsname": soa.nsname,
            "hostmaster": soa.hostmaster,
            "serial": soa.serial,
            "refresh": soa.refresh,
            "retry": soa.retry,
            "expire": soa.expire,
            "minttl": soa.minttl,
        },
        sort_keys=True,
    )


def serialize_dkim(dkim: DkimRecord) -> str:
    return f"{dkim.selector}: {' '.join(dkim.record)}"


def serialize_values(kind: RecordKind, value) -> list[str]:
    """Serialized row values for one kind of a snapshot, in snapshot order."""
    if kind is RecordKind.SOA:
        return [serialize_soa(value)] if value is not None else []
    if kind is RecordKind.MX:
        return [serialize_mx(mx) for mx in value]
    if kind is RecordKind.SRV:
        return [serialize_srv(srv) for srv in value]
    if kind is RecordKind.DKIM:
        return [serialize_dkim(dkim) for dkim in value]
    if kind is RecordKind.TXT:
        return [fragment for record in value for fragment in record]
    return [str(item) for item in value]


def flatten_snapshot(check_id: int, domain_id: int, snapshot: DomainSnapshot) -> list[RetrievedRecord]:
    """
    Build unsaved RetrievedRecord rows (id 0) for every value in a snapshot.

    Kinds are emitted in RecordKind order; empty kinds produce no rows.
    """
    rows = []
    for kind in RecordKind:
        for value in serialize_values(kind, snapshot.get(kind)):
            rows.append(
                RetrievedRecord(
                    id=0,
                    check_id=check_id,
                    domain_id=domain_id,
                    record_type=kind.value,
                    record_value=value,
                )
            )
    return rows


class AuditRecorder:
    """Writes check history and retrieved records to a RecordStore."""

    def __init__(
        self,
        store: RecordStore,
        logger: Optional["AuditLogger"] = None,
    ) -> None:
        self._store = store
        self._logger = logger

    async def begin_check(self, domain: Domain) -> CheckHistory:
        """Phase 1: insert a pending history row with status False."""
        checked_at = datetime.now(timezone.utc).isoformat()
        check = await self._store.insert_check_history(domain.id, checked_at, False)
        if self._logger:
            self._logger.debug(
                "AuditRecorder",
                f"Check {check.id} started for {domain.name}",
                {"check_id": check.id, "domain_id": domain.id},
            )
        return check

    async def record_snapshot(
        self, check: CheckHistory, snapshot: DomainSnapshot
    ) -> list[RetrievedRecord]:
        """Flatten the snapshot and bulk-insert it under the check's id."""
        rows = flatten_snapshot(check.id, check.domain_id, snapshot)
        if not rows:
            return []
        return await self._store.bulk_insert_retrieved_records(rows)

    async def finalize_check(self, check: CheckHistory, status: bool) -> CheckHistory:
        """Phase 2: store the overall verdict on the history row."""
        finalized = await self._store.update_check_history_status(check.id, status)
        if self._logger:
            self._logger.debug(
                "AuditRecorder",
                f"Check {check.id} finalized",
                {"check_id": check.id, "status": status},
            )
        return finalized
