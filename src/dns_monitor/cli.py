"""
Command-line interface for the DNS monitor.

Commands:
- check: Resolve all record kinds for one name and print them as JSON
- validate: Run one validation pass over every registered domain
- history / records: Inspect the audit trail
- add / domains: Register domains and expected records
- watch: Run validation passes periodically
- self-test: Verify configuration and connectivity
- config: Configuration management
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict, replace
from pathlib import Path
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    DEFAULT_STATE_DIR,
    EmailConfig,
    LoggingConfig,
    NotificationConfig,
    PersistenceConfig,
    ResolverConfig,
    RetryConfig,
    ScheduleConfig,
    SystemConfig,
    WebhookConfig,
    load_env_overrides,
)
from .domain_registry import DomainRegistry
from .enums import ValidationStatus
from .exceptions import DnsMonitorError
from .orchestrator import ValidationOrchestrator
from .scheduler import ValidationScheduler
from .self_test import SelfTest, run_self_test


DEFAULT_CONFIG_PATH = DEFAULT_STATE_DIR / "config.json"
DEFAULT_HMAC_SECRET = "default-secret-change-me"


def create_default_config(
    simulation_mode: bool = False,
    store_file: Optional[Path] = None,
    hmac_secret: str = DEFAULT_HMAC_SECRET,
) -> SystemConfig:
    """
    Create a default system configuration.

    Args:
        simulation_mode: Enable simulation mode (no real notifications)
        store_file: Path to the record store document
        hmac_secret: Secret for HMAC protection

    Returns:
        SystemConfig with default settings
    """
    if store_file is None:
        store_file = DEFAULT_STATE_DIR / "store.json"

    return SystemConfig(
        resolver=ResolverConfig(),
        retry=RetryConfig(),
        notifications=NotificationConfig(),
        persistence=PersistenceConfig(
            store_file_path=store_file,
            hmac_secret=hmac_secret,
        ),
        logging=LoggingConfig(level="info", output_format="text"),
        schedule=ScheduleConfig(),
        simulation_mode=simulation_mode,
    )


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Returns:
        SystemConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        resolver_data = data.get("resolver", {})
        resolver = ResolverConfig(
            nameservers=resolver_data.get("nameservers", []),
            timeout_seconds=resolver_data.get("timeout_seconds", 5.0),
            srv_prefix=resolver_data.get("srv_prefix", "_sip._tcp."),
            probe_domain=resolver_data.get("probe_domain", "example.com"),
        )

        retry_data = data.get("retry", {})
        retry = RetryConfig(
            max_retries=retry_data.get("max_retries", 2),
            base_delay_seconds=retry_data.get("base_delay_seconds", 1.0),
            max_delay_seconds=retry_data.get("max_delay_seconds", 30.0),
        )

        persistence_data = data.get("persistence", {})
        store_file_path = persistence_data.get("store_file_path")
        persistence = PersistenceConfig(
            store_file_path=Path(store_file_path) if store_file_path else DEFAULT_STATE_DIR / "store.json",
            hmac_secret=persistence_data.get("hmac_secret", DEFAULT_HMAC_SECRET),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            audit_mode=logging_data.get("audit_mode", False),
            audit_signing_key=logging_data.get("audit_signing_key"),
            output_format=logging_data.get("output_format", "text"),
        )

        schedule = ScheduleConfig(
            interval_seconds=data.get("schedule", {}).get("interval_seconds", 3600.0),
        )

        notifications_data = data.get("notifications", {})
        notifications = NotificationConfig()

        email_data = notifications_data.get("email", {})
        if email_data.get("enabled") and email_data.get("smtp_host"):
            notifications.email = EmailConfig(
                smtp_host=email_data["smtp_host"],
                smtp_port=email_data.get("smtp_port", 587),
                username=email_data.get("username", ""),
                password=email_data.get("password", ""),
                from_address=email_data.get("from_address", ""),
                to_addresses=email_data.get("to_addresses", []),
            )

        webhook_data = notifications_data.get("webhook", {})
        if webhook_data.get("enabled") and webhook_data.get("url"):
            notifications.webhook = WebhookConfig(
                url=webhook_data["url"],
                headers=webhook_data.get("headers", {}),
            )

        return SystemConfig(
            resolver=resolver,
            retry=retry,
            notifications=notifications,
            persistence=persistence,
            logging=logging_config,
            schedule=schedule,
            simulation_mode=data.get("simulation_mode", False),
        )

    except (json.JSONDecodeError, KeyError, TypeError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        notifications: dict = {}
        if config.notifications.email:
            notifications["email"] = {"enabled": True, **asdict(config.notifications.email)}
        if config.notifications.webhook:
            notifications["webhook"] = {"enabled": True, **asdict(config.notifications.webhook)}

        data = {
            "resolver": asdict(config.resolver),
            "retry": asdict(config.retry),
            "notifications": notifications,
            "persistence": {
                "store_file_path": str(config.persistence.store_file_path),
                "hmac_secret": config.persistence.hmac_secret,
            },
            "logging": asdict(config.logging),
            "schedule": asdict(config.schedule),
            "simulation_mode": config.simulation_mode,
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def resolve_config(args: argparse.Namespace) -> Optional[SystemConfig]:
    """Load the config named on the command line, then apply .env and flags."""
    config = None
    config_arg = getattr(args, "config", None)
    if config_arg:
        config = load_config_from_file(Path(config_arg))
        if config is None:
            print(f"Error: Could not load config from {config_arg}", file=sys.stderr)
            return None
    elif DEFAULT_CONFIG_PATH.exists():
        config = load_config_from_file(DEFAULT_CONFIG_PATH)

    if config is None:
        config = create_default_config()

    env_file = getattr(args, "env_file", None)
    config = load_env_overrides(config, Path(env_file) if env_file else None)

    if getattr(args, "dry_run", False):
        config = replace(config, simulation_mode=True)
    return config


def create_logger(config: SystemConfig, verbose: bool = False) -> AuditLogger:
    logging_config = config.logging
    if verbose:
        logging_config = replace(logging_config, level="debug")
    return AuditLogger.from_config(logging_config)


def print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


async def check_single_domain(domain: str, config: SystemConfig, verbose: bool = False) -> int:
    """Print the raw snapshot of a domain; nothing is recorded."""
    logger = create_logger(config, verbose)
    async with ValidationOrchestrator.from_config(config, logger=logger) as orchestrator:
        snapshot = await orchestrator.check_domain(domain)
    print_json({"domain": domain, "records": snapshot.to_dict()})
    return 0


async def validate_domains(
    config: SystemConfig,
    output_file: Optional[Path] = None,
    verbose: bool = False,
) -> int:
    """
    Run one validation pass.

    Returns:
        Exit code (0 if every domain passed or had no expectations, 1 otherwise)
    """
    logger = create_logger(config, verbose)
    async with ValidationOrchestrator.from_config(config, logger=logger) as orchestrator:
        summary = await orchestrator.validate_all_domains()

    for result in summary.results:
        marker = {
            ValidationStatus.SUCCESS: "✓",
            ValidationStatus.FAILED: "✗",
            ValidationStatus.NO_EXPECTATIONS: "-",
            ValidationStatus.ERROR: "!",
        }[result.status]
        print(f"  {marker} {result.domain}: {result.status.value}")
        for detail in result.failures():
            actual = ", ".join(str(v) for v in detail.actual_values) or "No records found"
            print(f"      {detail.record_type} expected {detail.expected_value!r}, got {actual}")
        if result.error:
            print(f"      Error: {result.error}")

    failed = [r for r in summary.results if r.status in (ValidationStatus.FAILED, ValidationStatus.ERROR)]
    print(f"\nSummary: {summary.total_domains - len(failed)}/{summary.total_domains} domain(s) passed")
    if summary.notification_sent:
        print("📨 Notification sent!")

    if output_file:
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(output_file, "w", encoding="utf-8") as f:
                json.dump(summary.to_dict(), f, indent=2, ensure_ascii=False)
            print(f"Results written to: {output_file}")
        except OSError as e:
            print(f"Error writing results: {e}", file=sys.stderr)

    return 1 if failed else 0


async def show_history(config: SystemConfig, domain_id: Optional[int] = None) -> int:
    orchestrator = ValidationOrchestrator.from_config(config)
    history = await orchestrator.get_check_history(domain_id)
    print_json([
        {
            "id": check.id,
            "domain_id": check.domain_id,
            "domain_name": check.domain_name,
            "checked_at": check.checked_at,
            "status": check.status,
            "state": check.state.value,
        }
        for check in history
    ])
    return 0


async def show_records(config: SystemConfig, check_id: int) -> int:
    orchestrator = ValidationOrchestrator.from_config(config)
    records = await orchestrator.get_retrieved_records(check_id)
    print_json([asdict(record) for record in records])
    return 0


async def add_domain(
    config: SystemConfig,
    domain: str,
    record_type: str,
    record_value: str,
    owner_id: int,
) -> int:
    orchestrator = ValidationOrchestrator.from_config(config)
    registry = DomainRegistry(orchestrator.store, logger=create_logger(config))
    result = await registry.add_domain_with_expected_record(domain, record_type, record_value, owner_id)
    print(
        f"Domain {result.domain.name} (id {result.domain.id}) expects "
        f"{result.expected_record.record_type} {result.expected_record.record_value!r}"
    )
    return 0


async def list_domains(config: SystemConfig) -> int:
    orchestrator = ValidationOrchestrator.from_config(config)
    store = orchestrator.store
    for domain in await store.list_domains():
        expected = await store.list_expected_records(domain.id)
        print(f"{domain.id:>5}  {domain.name}  ({len(expected)} expected record(s))")
        for record in expected:
            print(f"         {record.record_type:<6} {record.record_value}")
    return 0


async def watch_domains(config: SystemConfig, interval: Optional[float], verbose: bool = False) -> int:
    logger = create_logger(config, verbose)
    orchestrator = ValidationOrchestrator.from_config(config, logger=logger)
    scheduler = ValidationScheduler(
        interval_seconds=interval or config.schedule.interval_seconds,
        callback=orchestrator.validate_all_domains,
        logger=logger,
    )
    print(f"Validating every {scheduler.interval_seconds:.0f}s, press Ctrl+C to stop")
    await scheduler.run()
    return 0


def run_command(coro) -> int:
    """Run a command coroutine, reporting monitor errors instead of tracebacks."""
    try:
        return asyncio.run(coro)
    except DnsMonitorError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    config = resolve_config(args)
    if config is None:
        return 1
    return run_command(check_single_domain(args.domain, config, verbose=args.verbose))


def cmd_validate(args: argparse.Namespace) -> int:
    """Handle the 'validate' command."""
    config = resolve_config(args)
    if config is None:
        return 1
    if config.simulation_mode:
        print("Simulation mode: notifications are not delivered")
    output_file = Path(args.output) if args.output else None
    return run_command(validate_domains(config, output_file=output_file, verbose=args.verbose))


def cmd_history(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    if config is None:
        return 1
    return run_command(show_history(config, args.domain_id))


def cmd_records(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    if config is None:
        return 1
    return run_command(show_records(config, args.check_id))


def cmd_add(args: argparse.Namespace) -> int:
    """Handle the 'add' command."""
    config = resolve_config(args)
    if config is None:
        return 1
    return run_command(add_domain(config, args.domain, args.record_type, args.record_value, args.owner))


def cmd_domains(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    if config is None:
        return 1
    return run_command(list_domains(config))


def cmd_watch(args: argparse.Namespace) -> int:
    """Handle the 'watch' command."""
    config = resolve_config(args)
    if config is None:
        return 1
    try:
        return run_command(watch_domains(config, args.interval, verbose=args.verbose))
    except KeyboardInterrupt:
        print("\nStopped.")
        return 0


def cmd_self_test(args: argparse.Namespace) -> int:
    """Handle the 'self-test' command."""
    config = resolve_config(args)
    if config is None:
        return 1
    result = asyncio.run(run_self_test(config=config, print_output=True))
    return 0 if result.success else 1


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Nameservers: {', '.join(config.resolver.nameservers) or 'system default'}")
        print(f"  Resolver timeout: {config.resolver.timeout_seconds}s")
        print(f"  Store file: {config.persistence.store_file_path}")
        print(f"  Check interval: {config.schedule.interval_seconds}s")
        print(f"  Email alerts: {'on' if config.notifications.email else 'off'}")
        print(f"  Webhook alerts: {'on' if config.notifications.webhook else 'off'}")
        print(f"  Simulation mode: {config.simulation_mode}")
        print(f"  Log level: {config.logging.level}")
        print(f"  Audit mode: {config.logging.audit_mode}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        if save_config_to_file(create_default_config(), config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        return 1

    elif args.action == "validate":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1

        result = SelfTest(config).validate_config()
        for warning in result.warnings:
            print(f"  Warning: {warning}")
        if not result.valid:
            for error in result.errors:
                print(f"  Error: {error}", file=sys.stderr)
            return 1
        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="dns-monitor",
        description="DNS record monitoring and validation",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", "-c", help="Path to configuration file")
    common.add_argument("--env-file", help="Path to a .env file with overrides")
    common.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    check_parser = subparsers.add_parser(
        "check", parents=[common], help="Show all DNS records of a domain",
    )
    check_parser.add_argument("domain", help="Domain to look up (e.g., example.com)")
    check_parser.set_defaults(func=cmd_check)

    validate_parser = subparsers.add_parser(
        "validate", parents=[common], help="Validate all registered domains",
    )
    validate_parser.add_argument("--output", "-o", help="Path to write results as JSON")
    validate_parser.add_argument(
        "--dry-run", action="store_true", help="Simulation mode - notifications are not delivered",
    )
    validate_parser.set_defaults(func=cmd_validate)

    history_parser = subparsers.add_parser(
        "history", parents=[common], help="Show validation history",
    )
    history_parser.add_argument("--domain-id", type=int, help="Only show checks of this domain")
    history_parser.set_defaults(func=cmd_history)

    records_parser = subparsers.add_parser(
        "records", parents=[common], help="Show records retrieved by a check",
    )
    records_parser.add_argument("check_id", type=int, help="Check history id")
    records_parser.set_defaults(func=cmd_records)

    add_parser = subparsers.add_parser(
        "add", parents=[common], help="Register a domain with an expected record",
    )
    add_parser.add_argument("domain", help="Domain name")
    add_parser.add_argument("record_type", help="Record type (A, AAAA, CNAME, MX, TXT, NS, ...)")
    add_parser.add_argument("record_value", help="Expected record value")
    add_parser.add_argument("--owner", type=int, default=1, help="Owner id (default: 1)")
    add_parser.set_defaults(func=cmd_add)

    domains_parser = subparsers.add_parser(
        "domains", parents=[common], help="List registered domains",
    )
    domains_parser.set_defaults(func=cmd_domains)

    watch_parser = subparsers.add_parser(
        "watch", parents=[common], help="Validate all domains periodically",
    )
    watch_parser.add_argument("--interval", "-i", type=float, help="Seconds between passes")
    watch_parser.add_argument(
        "--dry-run", action="store_true", help="Simulation mode - notifications are not delivered",
    )
    watch_parser.set_defaults(func=cmd_watch)

    self_test_parser = subparsers.add_parser(
        "self-test", parents=[common], help="Verify configuration and connectivity",
    )
    self_test_parser.set_defaults(func=cmd_self_test)

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "action", choices=["show", "init", "validate"], help="Configuration action",
    )
    config_parser.add_argument("--path", "-p", help="Path to configuration file")
    config_parser.add_argument(
        "--force", "-f", action="store_true", help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
