"""
DNS Monitor - DNS record resolution and validation.

This package resolves the DNS records of registered domains, compares them
against operator-configured expectations, keeps an audit trail of every
check and alerts on mismatches.
"""

__version__ = "0.1.0"
__author__ = "DNS Monitor Team"

from dns_monitor.exceptions import (
    DnsMonitorError,
    ValidationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    TamperingError,
    NotificationError,
)
from dns_monitor.enums import (
    RecordKind,
    DkimSelector,
    ValidationStatus,
    CheckState,
    LogLevel,
    DomainValidationErrorCode,
)
from dns_monitor.config import (
    ResolverConfig,
    RetryConfig,
    EmailConfig,
    WebhookConfig,
    NotificationConfig,
    PersistenceConfig,
    LoggingConfig,
    ScheduleConfig,
    SystemConfig,
    load_env_overrides,
)
from dns_monitor.models import (
    Domain,
    ExpectedRecord,
    CheckHistory,
    RetrievedRecord,
    MxRecord,
    SrvRecord,
    SoaRecord,
    DkimRecord,
    DomainSnapshot,
    RecordComparison,
    ValidationFailure,
    DomainValidationResult,
    ValidationSummary,
)
from dns_monitor.audit_logger import (
    AuditLogger,
    LogEntry,
)
from dns_monitor.resolver import (
    DnsResolver,
    LookupOutcome,
    ResolverAdapter,
)
from dns_monitor.collector import DomainRecordCollector
from dns_monitor.matcher import RecordMatcher
from dns_monitor.record_store import (
    RecordStore,
    JsonRecordStore,
)
from dns_monitor.audit_recorder import (
    AuditRecorder,
    flatten_snapshot,
)
from dns_monitor.domain_validator import (
    DomainValidator,
    NameValidationResult,
    NameValidationError,
)
from dns_monitor.domain_registry import (
    DomainRegistry,
    RegistrationResult,
)
from dns_monitor.notifications import (
    FailureReport,
    NotificationResult,
    NotificationChannel,
    ValidationFailureNotifier,
    EmailChannel,
    WebhookChannel,
    NotificationRouter,
    create_notification_router,
)
from dns_monitor.scheduler import (
    ValidationScheduler,
    ScheduleRun,
)
from dns_monitor.orchestrator import ValidationOrchestrator
from dns_monitor.self_test import (
    SelfTest,
    SelfTestResult,
    ProbeResult,
    ConfigValidationResult,
    run_self_test,
)
from dns_monitor.cli import (
    main as cli_main,
    create_parser,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)

__all__ = [
    # Exceptions
    "DnsMonitorError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "PersistenceError",
    "TamperingError",
    "NotificationError",
    # Enums
    "RecordKind",
    "DkimSelector",
    "ValidationStatus",
    "CheckState",
    "LogLevel",
    "DomainValidationErrorCode",
    # Configuration
    "ResolverConfig",
    "RetryConfig",
    "EmailConfig",
    "WebhookConfig",
    "NotificationConfig",
    "PersistenceConfig",
    "LoggingConfig",
    "ScheduleConfig",
    "SystemConfig",
    "load_env_overrides",
    # Models
    "Domain",
    "ExpectedRecord",
    "CheckHistory",
    "RetrievedRecord",
    "MxRecord",
    "SrvRecord",
    "SoaRecord",
    "DkimRecord",
    "DomainSnapshot",
    "RecordComparison",
    "ValidationFailure",
    "DomainValidationResult",
    "ValidationSummary",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Resolver and collection
    "DnsResolver",
    "LookupOutcome",
    "ResolverAdapter",
    "DomainRecordCollector",
    "RecordMatcher",
    # Store and audit trail
    "RecordStore",
    "JsonRecordStore",
    "AuditRecorder",
    "flatten_snapshot",
    # Registry
    "DomainValidator",
    "NameValidationResult",
    "NameValidationError",
    "DomainRegistry",
    "RegistrationResult",
    # Notifications
    "FailureReport",
    "NotificationResult",
    "NotificationChannel",
    "ValidationFailureNotifier",
    "EmailChannel",
    "WebhookChannel",
    "NotificationRouter",
    "create_notification_router",
    # Scheduler
    "ValidationScheduler",
    "ScheduleRun",
    # Orchestrator
    "ValidationOrchestrator",
    # Self-Test
    "SelfTest",
    "SelfTestResult",
    "ProbeResult",
    "ConfigValidationResult",
    "run_self_test",
    # CLI
    "cli_main",
    "create_parser",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
]
