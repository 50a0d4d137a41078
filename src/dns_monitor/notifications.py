"""
Notification module for the DNS monitor.

Delivers validation-failure alerts. A NotificationRouter fans one batch of
failures out to the registered channels (Email, Webhook), retrying each
channel with exponential backoff. Delivery is best-effort: failures are
logged and reported in the returned results, never raised.
"""

import asyncio
import html
import json
import smtplib
import ssl
from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

import httpx

from .config import EmailConfig, RetryConfig, WebhookConfig
from .enums import LogLevel
from .exceptions import NotificationError
from .models import ValidationFailure

if TYPE_CHECKING:
    from .audit_logger import AuditLogger


def format_actual_value(value: Any) -> str:
    """Render one actual value; structured values are shown as JSON."""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


@dataclass
class FailureReport:
    """One batch of validation failures from a validation pass."""

    failures: list[ValidationFailure]
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def domain_count(self) -> int:
        return len({failure.domain for failure in self.failures})

    @property
    def subject(self) -> str:
        return f"DNS Validation Failures - {len(self.failures)} domain(s) failed"

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "failure_count": len(self.failures),
            "domain_count": self.domain_count,
            "failures": [failure.to_dict() for failure in self.failures],
        }


@dataclass
class NotificationResult:
    """Result of a notification delivery attempt."""

    channel: str
    success: bool
    error: Optional[str] = None
    attempts: int = 1


@runtime_checkable
class NotificationChannel(Protocol):
    """Interface for notification channels."""

    @abstractmethod
    async def send(self, report: FailureReport) -> bool:
        """
        Deliver a failure report.

        Returns:
            True if delivery was successful, False otherwise
        """
        ...

    @abstractmethod
    def get_name(self) -> str:
        ...


@runtime_checkable
class ValidationFailureNotifier(Protocol):
    """What the orchestrator needs from an alerting backend."""

    async def notify_validation_failures(
        self, failures: list[ValidationFailure]
    ) -> list[NotificationResult]:
        ...


class EmailChannel:
    """Email notification channel using SMTP with STARTTLS."""

    def __init__(
        self,
        config: EmailConfig,
        simulation_mode: bool = False,
        logger: Optional["AuditLogger"] = None,
    ) -> None:
        """
        Initialize Email channel.

        Without SMTP credentials the channel only logs what it would send.

        Args:
            config: Email configuration with SMTP settings
            simulation_mode: If True, no real network requests are made
            logger: Optional audit logger
        """
        self._config = config
        self._simulation_mode = simulation_mode
        self._logger = logger

    @property
    def has_credentials(self) -> bool:
        return bool(self._config.username and self._config.password)

    @property
    def recipients(self) -> list[str]:
        return [r.strip() for r in self._config.to_addresses if r.strip()]

    async def send(self, report: FailureReport) -> bool:
        """Send the report as an HTML email."""
        if self._simulation_mode:
            return True

        if not self.has_credentials:
            if self._logger:
                self._logger.warn(
                    "EmailChannel",
                    "SMTP credentials not set; email notification logged but not sent",
                    {"to": self.recipients, "subject": report.subject},
                )
            return True

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._send_sync, report)
        except Exception:
            return False

    async def verify_connection(self) -> bool:
        """Open an SMTP session and issue NOOP."""
        if self._simulation_mode:
            return True
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._verify_sync)
        except Exception:
            return False

    def get_name(self) -> str:
        return "email"

    def _send_sync(self, report: FailureReport) -> bool:
        try:
            msg = self.format_email(report)
            context = ssl.create_default_context()
            with smtplib.SMTP(self._config.smtp_host, self._config.smtp_port, timeout=30) as server:
                server.starttls(context=context)
                server.login(self._config.username, self._config.password)
                server.sendmail(self._sender(), self.recipients, msg.as_string())
            return True
        except Exception:
            return False

    def _verify_sync(self) -> bool:
        context = ssl.create_default_context()
        with smtplib.SMTP(self._config.smtp_host, self._config.smtp_port, timeout=10) as server:
            server.starttls(context=context)
            if self.has_credentials:
                server.login(self._config.username, self._config.password)
            code, _ = server.noop()
            return code == 250

    def _sender(self) -> str:
        return self._config.from_address or self._config.username or "dns-monitor@localhost"

    def format_email(self, report: FailureReport) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = f'"DNS Monitor" <{self._sender()}>'
        msg["To"] = ", ".join(self.recipients)
        msg["Subject"] = report.subject
        msg.attach(MIMEText(self.format_text(report), "plain", "utf-8"))
        msg.attach(MIMEText(self.format_html(report), "html", "utf-8"))
        return msg

    def format_text(self, report: FailureReport) -> str:
        lines = [
            f"DNS validation detected {len(report.failures)} record(s) "
            "that do not match the expected values.",
            "",
        ]
        for failure in report.failures:
            actual = (
                ", ".join(format_actual_value(v) for v in failure.actual_values)
                or "No records found"
            )
            lines.append(
                f"{failure.domain} {failure.record_type}: "
                f"expected {failure.expected_value!r}, got {actual}"
            )
        lines.append("")
        lines.append(f"Generated at {report.timestamp}")
        return "\n".join(lines)

    def format_html(self, report: FailureReport) -> str:
        rows = []
        for failure in report.failures:
            if failure.actual_values:
                actual = "<br>".join(
                    html.escape(format_actual_value(v)) for v in failure.actual_values
                )
            else:
                actual = "<em>No records found</em>"
            rows.append(
                "<tr>"
                f"<td>{html.escape(failure.domain)}</td>"
                f"<td>{html.escape(failure.record_type)}</td>"
                f"<td><code>{html.escape(failure.expected_value)}</code></td>"
                f"<td><code>{actual}</code></td>"
                "</tr>"
            )
        return (
            "<!DOCTYPE html><html><head><meta charset=\"UTF-8\">"
            "<title>DNS Validation Failures</title></head><body>"
            "<h1>DNS Validation Alert</h1>"
            f"<p>DNS validation has detected <strong>{len(report.failures)}</strong> "
            "failed record(s) that do not match the expected values.</p>"
            "<table border=\"1\" cellpadding=\"8\" style=\"border-collapse: collapse\">"
            "<thead><tr><th>Domain</th><th>Record Type</th>"
            "<th>Expected Value</th><th>Actual Value(s)</th></tr></thead>"
            f"<tbody>{''.join(rows)}</tbody></table>"
            f"<p>Generated automatically at {html.escape(report.timestamp)}.</p>"
            "</body></html>"
        )


class WebhookChannel:
    """Generic webhook notification channel using HTTP POST."""

    def __init__(
        self,
        config: WebhookConfig,
        simulation_mode: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = config.url
        self._headers = config.headers.copy()
        self._simulation_mode = simulation_mode
        self._transport = transport

    async def send(self, report: FailureReport) -> bool:
        """POST the report as JSON; any 2xx counts as delivered."""
        if self._simulation_mode:
            return True

        headers = {"Content-Type": "application/json"}
        headers.update(self._headers)

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.post(
                    self._url,
                    json=report.to_dict(),
                    headers=headers,
                    timeout=30.0,
                )
                return 200 <= response.status_code < 300
            except httpx.HTTPError:
                return False

    def get_name(self) -> str:
        return "webhook"


@dataclass
class RetryAttempt:
    """Record of a single failed delivery attempt."""

    attempt_number: int
    error: str
    timestamp: str


class NotificationRouter:
    """
    Routes failure reports to registered channels with retry logic.

    Implements ValidationFailureNotifier.
    """

    def __init__(
        self,
        retry_config: Optional[RetryConfig] = None,
        logger: Optional["AuditLogger"] = None,
    ) -> None:
        self._channels: list[NotificationChannel] = []
        self._retry_config = retry_config or RetryConfig()
        self._logger = logger

    def register_channel(self, channel: NotificationChannel) -> None:
        """
        Add a channel to the fan-out.

        Raises:
            NotificationError: If a channel with the same name is already registered
        """
        name = channel.get_name()
        if any(c.get_name() == name for c in self._channels):
            raise NotificationError(
                code="duplicate_channel",
                message=f"Notification channel '{name}' is already registered",
                details={"channel": name},
            )
        self._channels.append(channel)

    def unregister_channel(self, channel_name: str) -> bool:
        for i, channel in enumerate(self._channels):
            if channel.get_name() == channel_name:
                self._channels.pop(i)
                return True
        return False

    @property
    def channels(self) -> list[NotificationChannel]:
        return self._channels.copy()

    async def notify_validation_failures(
        self, failures: list[ValidationFailure]
    ) -> list[NotificationResult]:
        """
        Send one report covering all failures to every channel.

        Args:
            failures: Mismatched records collected over a validation pass

        Returns:
            One NotificationResult per channel; empty when there was nothing to send
        """
        if not failures:
            if self._logger:
                self._logger.info("NotificationRouter", "No DNS validation failures to report")
            return []

        report = FailureReport(failures=list(failures))
        results = []
        for channel in self._channels:
            results.append(await self._send_with_retry(channel, report))

        if self._logger:
            self._logger.info(
                "NotificationRouter",
                f"Validation failure alert dispatched for {len(failures)} record(s)",
                {
                    "channels": {r.channel: r.success for r in results},
                    "domain_count": report.domain_count,
                },
            )
        return results

    async def _send_with_retry(
        self,
        channel: NotificationChannel,
        report: FailureReport,
    ) -> NotificationResult:
        channel_name = channel.get_name()
        max_attempts = self._retry_config.max_retries + 1
        attempts = 0
        retry_attempts: list[RetryAttempt] = []
        last_error: Optional[str] = None

        while attempts < max_attempts:
            attempts += 1
            try:
                if await channel.send(report):
                    return NotificationResult(channel=channel_name, success=True, attempts=attempts)
                last_error = "Channel returned failure"
            except Exception as e:
                last_error = str(e)
            retry_attempts.append(
                RetryAttempt(
                    attempt_number=attempts,
                    error=last_error,
                    timestamp=datetime.now(timezone.utc).isoformat(),
                )
            )

            if attempts < max_attempts:
                await asyncio.sleep(self._calculate_delay(attempts - 1))

        self._log_all_retries_failed(channel_name, report, retry_attempts)
        return NotificationResult(
            channel=channel_name,
            success=False,
            error=last_error,
            attempts=attempts,
        )

    def _calculate_delay(self, attempt: int) -> float:
        delay = self._retry_config.base_delay_seconds * (2 ** attempt)
        return min(delay, self._retry_config.max_delay_seconds)

    def _log_all_retries_failed(
        self,
        channel_name: str,
        report: FailureReport,
        retry_attempts: list[RetryAttempt],
    ) -> None:
        if self._logger is None:
            return

        self._logger.log(
            level=LogLevel.ERROR,
            component="NotificationRouter",
            message=f"All notification retries failed for channel '{channel_name}'",
            data={
                "channel": channel_name,
                "failure_count": len(report.failures),
                "total_attempts": len(retry_attempts),
                "attempts": [
                    {
                        "attempt": attempt.attempt_number,
                        "error": attempt.error,
                        "timestamp": attempt.timestamp,
                    }
                    for attempt in retry_attempts
                ],
            },
        )


def create_notification_router(
    notifications,
    retry_config: RetryConfig,
    simulation_mode: bool = False,
    logger: Optional["AuditLogger"] = None,
) -> Optional[NotificationRouter]:
    """
    Build a router from a NotificationConfig.

    Returns:
        NotificationRouter if any channel is configured, None otherwise
    """
    if notifications is None or not (notifications.email or notifications.webhook):
        return None

    router = NotificationRouter(retry_config=retry_config, logger=logger)
    if notifications.email:
        router.register_channel(
            EmailChannel(notifications.email, simulation_mode=simulation_mode, logger=logger)
        )
    if notifications.webhook:
        router.register_channel(
            WebhookChannel(notifications.webhook, simulation_mode=simulation_mode)
        )
    return router
