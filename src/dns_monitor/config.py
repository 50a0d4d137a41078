"""
Configuration dataclasses for the DNS monitor.

This module defines all configuration structures used throughout the system,
including resolver settings, notification channels, persistence, logging and
scheduling, plus environment overrides read from a .env file.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_STATE_DIR = Path.home() / ".dns_monitor"


@dataclass
class ResolverConfig:
    """DNS resolver configuration."""

    nameservers: list[str] = field(default_factory=list)  # empty = system resolvers
    timeout_seconds: float = 5.0
    srv_prefix: str = "_sip._tcp."
    probe_domain: str = "example.com"  # used by the self-test


@dataclass
class RetryConfig:
    """Retry behavior for notification delivery."""

    max_retries: int = 2
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0


@dataclass
class EmailConfig:
    """Email notification channel configuration."""

    smtp_host: str
    smtp_port: int = 587
    username: str = ""
    password: str = ""
    from_address: str = ""
    to_addresses: list[str] = field(default_factory=list)


@dataclass
class WebhookConfig:
    """Generic webhook notification channel configuration."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class NotificationConfig:
    """Notification channels configuration."""

    email: Optional[EmailConfig] = None
    webhook: Optional[WebhookConfig] = None


@dataclass
class PersistenceConfig:
    """Record store configuration."""

    store_file_path: Path
    hmac_secret: str


@dataclass
class LoggingConfig:
    """Logging and audit configuration."""

    level: str = "info"
    audit_mode: bool = False
    audit_signing_key: Optional[str] = None
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class ScheduleConfig:
    """Periodic validation configuration."""

    interval_seconds: float = 3600.0


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    resolver: ResolverConfig
    retry: RetryConfig
    notifications: NotificationConfig
    persistence: PersistenceConfig
    logging: LoggingConfig
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    simulation_mode: bool = False


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.replace(";", ",").split(",") if item.strip()]


def load_env_overrides(
    config: SystemConfig,
    env_file: Optional[Path] = None,
) -> SystemConfig:
    """
    Apply environment overrides on top of a configuration.

    Values are read from the process environment after loading ``env_file``
    (or a ``.env`` in the working directory). Variables that are unset leave
    the corresponding setting untouched.

    Args:
        config: Base configuration
        env_file: Optional path to a dotenv file

    Returns:
        A new SystemConfig with overrides applied
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    resolver = config.resolver
    nameservers = os.getenv("DNS_NAMESERVERS")
    if nameservers:
        resolver = replace(resolver, nameservers=_split_list(nameservers))
    timeout = os.getenv("DNS_TIMEOUT")
    if timeout:
        try:
            resolver = replace(resolver, timeout_seconds=float(timeout))
        except ValueError:
            pass

    notifications = config.notifications
    smtp_host = os.getenv("SMTP_HOST")
    if smtp_host:
        base = notifications.email or EmailConfig(smtp_host=smtp_host)
        smtp_user = os.getenv("SMTP_USER", base.username)
        smtp_port = base.smtp_port
        try:
            smtp_port = int(os.getenv("SMTP_PORT", str(base.smtp_port)))
        except ValueError:
            pass
        email = replace(
            base,
            smtp_host=smtp_host,
            smtp_port=smtp_port,
            username=smtp_user,
            password=os.getenv("SMTP_PASS", base.password),
            from_address=base.from_address or smtp_user,
        )
        recipients = os.getenv("EMAIL_RECIPIENTS")
        if recipients:
            email = replace(email, to_addresses=_split_list(recipients))
        notifications = replace(notifications, email=email)
    webhook_url = os.getenv("ALERT_WEBHOOK_URL")
    if webhook_url:
        notifications = replace(notifications, webhook=WebhookConfig(url=webhook_url))

    persistence = config.persistence
    store_path = os.getenv("STORE_PATH")
    if store_path:
        persistence = replace(persistence, store_file_path=Path(store_path))
    hmac_secret = os.getenv("STORE_HMAC_SECRET")
    if hmac_secret:
        persistence = replace(persistence, hmac_secret=hmac_secret)

    schedule = config.schedule
    interval = os.getenv("CHECK_INTERVAL_SECONDS")
    if interval:
        try:
            schedule = replace(schedule, interval_seconds=float(interval))
        except ValueError:
            pass

    return replace(
        config,
        resolver=resolver,
        notifications=notifications,
        persistence=persistence,
        schedule=schedule,
    )
