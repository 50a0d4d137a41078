"""
Validation Orchestrator for the DNS monitor.

Coordinates one validation pass over every registered domain:
- Collect a DomainSnapshot through the resolver adapter
- Record check history and retrieved records (two-phase)
- Match each expected record against the snapshot
- Batch all mismatches into a single notification

A failure while validating one domain becomes an error entry for that
domain only; it never changes the verdict of any other domain.
"""

from typing import Optional

from .audit_logger import AuditLogger
from .audit_recorder import AuditRecorder
from .collector import DomainRecordCollector
from .config import SystemConfig
from .enums import LogLevel, ValidationStatus
from .matcher import RecordMatcher
from .models import (
    CheckHistory,
    Domain,
    DomainSnapshot,
    DomainValidationResult,
    RetrievedRecord,
    ValidationFailure,
    ValidationSummary,
)
from .notifications import ValidationFailureNotifier, create_notification_router
from .record_store import JsonRecordStore, RecordStore
from .resolver import ResolverAdapter


NO_EXPECTATIONS_MESSAGE = "No expected DNS records configured"


class ValidationOrchestrator:
    """
    Main orchestrator for DNS validation passes.

    Domains are processed one after another; the lookups for a single
    domain run concurrently inside the collector.
    """

    async def __aenter__(self) -> "ValidationOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        pass

    def __init__(
        self,
        store: RecordStore,
        collector: DomainRecordCollector,
        matcher: Optional[RecordMatcher] = None,
        recorder: Optional[AuditRecorder] = None,
        notifier: Optional[ValidationFailureNotifier] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the validation orchestrator.

        Args:
            store: Record store holding domains, expectations and the audit trail
            collector: Collector producing DomainSnapshots
            matcher: Optional matcher, defaults to a RecordMatcher sharing the logger
            recorder: Optional audit recorder, defaults to one writing to store
            notifier: Optional notifier for validation failures
            logger: Optional audit logger for logging
        """
        self._store = store
        self._collector = collector
        self._matcher = matcher or RecordMatcher(logger=logger)
        self._recorder = recorder or AuditRecorder(store, logger=logger)
        self._notifier = notifier
        self._logger = logger

    @classmethod
    def from_config(
        cls,
        config: SystemConfig,
        logger: Optional[AuditLogger] = None,
    ) -> "ValidationOrchestrator":
        """Wire the default components from a SystemConfig."""
        store = JsonRecordStore(
            file_path=config.persistence.store_file_path,
            hmac_secret=config.persistence.hmac_secret,
        )
        resolver = ResolverAdapter(config.resolver, logger=logger)
        notifier = create_notification_router(
            config.notifications,
            config.retry,
            simulation_mode=config.simulation_mode,
            logger=logger,
        )
        return cls(
            store=store,
            collector=DomainRecordCollector(resolver, logger=logger),
            notifier=notifier,
            logger=logger,
        )

    @property
    def store(self) -> RecordStore:
        return self._store

    async def check_domain(self, name: str) -> DomainSnapshot:
        """
        Resolve every record kind for a name without validating or recording.

        Args:
            name: Domain name to look up

        Returns:
            DomainSnapshot with all twelve kinds present
        """
        self._log_info("ValidationOrchestrator", f"Checking DNS records for {name}", {"domain": name})
        return await self._collector.collect(name)

    async def validate_all_domains(self) -> ValidationSummary:
        """
        Validate every registered domain and notify once about all mismatches.

        Raises:
            PersistenceError: If the domain list cannot be loaded
        """
        domains = await self._store.list_domains()
        self._log_info(
            "ValidationOrchestrator",
            f"Starting validation of {len(domains)} domain(s)",
            {"total_domains": len(domains)},
        )

        results: list[DomainValidationResult] = []
        for domain in domains:
            try:
                result = await self.validate_domain(domain)
            except Exception as e:
                self._log_error(
                    "ValidationOrchestrator",
                    f"Validation failed for {domain.name}: {e}",
                    {"domain": domain.name, "domain_id": domain.id, "error_type": type(e).__name__},
                )
                result = DomainValidationResult(
                    domain=domain.name,
                    domain_id=domain.id,
                    status=ValidationStatus.ERROR,
                    error=str(e),
                )
            results.append(result)

        summary = ValidationSummary(total_domains=len(domains), results=results)
        failures = summary.failures()
        if failures:
            summary.notification_sent = await self._notify(failures)

        self._log_info(
            "ValidationOrchestrator",
            "Validation pass completed",
            {
                "total_domains": summary.total_domains,
                "failed": sum(1 for r in results if r.status == ValidationStatus.FAILED),
                "errors": sum(1 for r in results if r.status == ValidationStatus.ERROR),
                "notification_sent": summary.notification_sent,
            },
        )
        return summary

    async def validate_domain(self, domain: Domain) -> DomainValidationResult:
        """
        Validate one domain against its expected records.

        The history row is written before the lookups and finalized after
        matching, so an interrupted check stays visible as pending.
        """
        expected_records = await self._store.list_expected_records(domain.id)
        check = await self._recorder.begin_check(domain)
        snapshot = await self._collector.collect(domain.name)
        await self._recorder.record_snapshot(check, snapshot)

        if not expected_records:
            await self._recorder.finalize_check(check, False)
            self._log_info(
                "ValidationOrchestrator",
                f"No expectations configured for {domain.name}",
                {"domain": domain.name, "history_id": check.id},
            )
            return DomainValidationResult(
                domain=domain.name,
                domain_id=domain.id,
                status=ValidationStatus.NO_EXPECTATIONS,
                history_id=check.id,
                message=NO_EXPECTATIONS_MESSAGE,
            )

        details = [self._matcher.match(expected, snapshot) for expected in expected_records]
        overall_match = all(detail.matched for detail in details)
        await self._recorder.finalize_check(check, overall_match)

        status = ValidationStatus.SUCCESS if overall_match else ValidationStatus.FAILED
        self._log_info(
            "ValidationOrchestrator",
            f"Validation of {domain.name}: {status.value}",
            {
                "domain": domain.name,
                "history_id": check.id,
                "matched": sum(1 for d in details if d.matched),
                "expected": len(details),
            },
        )
        return DomainValidationResult(
            domain=domain.name,
            domain_id=domain.id,
            status=status,
            overall_match=overall_match,
            validation_details=details,
            history_id=check.id,
        )

    async def get_check_history(self, domain_id: Optional[int] = None) -> list[CheckHistory]:
        """History rows, newest first, optionally for a single domain."""
        return await self._store.list_check_history(domain_id)

    async def get_retrieved_records(self, check_id: int) -> list[RetrievedRecord]:
        return await self._store.list_retrieved_records(check_id)

    async def _notify(self, failures: list[ValidationFailure]) -> bool:
        """Hand the batch to the notifier; a notifier failure is logged only."""
        if self._notifier is None:
            self._log_info(
                "ValidationOrchestrator",
                "No notifier configured, skipping alert",
                {"failure_count": len(failures)},
            )
            return False

        try:
            results = await self._notifier.notify_validation_failures(failures)
        except Exception as e:
            self._log_error(
                "ValidationOrchestrator",
                f"Failed to send validation failure notification: {e}",
                {"failure_count": len(failures), "error_type": type(e).__name__},
            )
            return False

        return any(getattr(r, "success", False) for r in results or [])

    def _log_info(self, component: str, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(LogLevel.INFO, component, message, data)

    def _log_error(self, component: str, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(LogLevel.ERROR, component, message, data)
