"""
Startup self-test for the DNS monitor.

Validates the configuration and checks that the resolver can answer a
probe lookup (and, when email alerts are configured, that the SMTP
server accepts a session) before the monitor starts validating.
"""

import ipaddress
import time
from dataclasses import dataclass, field
from typing import Optional

from .config import SystemConfig
from .notifications import EmailChannel
from .resolver import ResolverAdapter


@dataclass
class ProbeResult:
    """Result of one connectivity probe."""

    target: str
    probe_type: str  # 'dns', 'smtp'
    success: bool
    response_time_ms: float
    error: Optional[str] = None
    answers: list[str] = field(default_factory=list)


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class SelfTestResult:
    """Complete self-test result."""

    success: bool
    config_validation: ConfigValidationResult
    probe_results: list[ProbeResult] = field(default_factory=list)
    total_duration_ms: float = 0.0

    @property
    def failed_probes(self) -> list[ProbeResult]:
        return [r for r in self.probe_results if not r.success]


class SelfTest:
    """
    Startup self-test.

    Performs:
    1. Configuration validation
    2. A resolver probe (one A lookup of ``resolver.probe_domain``)
    3. An SMTP session check when email alerts have credentials
    """

    def __init__(
        self,
        config: SystemConfig,
        resolver: Optional[ResolverAdapter] = None,
        email_channel: Optional[EmailChannel] = None,
    ) -> None:
        self._config = config
        self._resolver = resolver or ResolverAdapter(config.resolver)
        email = config.notifications.email
        if email_channel is None and email is not None:
            email_channel = EmailChannel(email, simulation_mode=config.simulation_mode)
        self._email_channel = email_channel

    async def run(self) -> SelfTestResult:
        start_time = time.perf_counter()

        config_result = self.validate_config()
        if not config_result.valid:
            return SelfTestResult(
                success=False,
                config_validation=config_result,
                total_duration_ms=self._elapsed_ms(start_time),
            )

        probes = [await self._probe_resolver()]
        if self._email_channel is not None and self._email_channel.has_credentials:
            probes.append(await self._probe_smtp())

        return SelfTestResult(
            success=all(p.success for p in probes),
            config_validation=config_result,
            probe_results=probes,
            total_duration_ms=self._elapsed_ms(start_time),
        )

    def validate_config(self) -> ConfigValidationResult:
        """
        Validate the system configuration.

        Checks:
        - Resolver timeout and schedule interval are positive
        - Configured nameservers are IP addresses
        - SMTP settings come with recipients
        - The store HMAC secret is set and not the default
        """
        errors: list[str] = []
        warnings: list[str] = []

        resolver = self._config.resolver
        if resolver.timeout_seconds <= 0:
            errors.append("Resolver timeout must be positive")
        for nameserver in resolver.nameservers:
            try:
                ipaddress.ip_address(nameserver)
            except ValueError:
                errors.append(f"Invalid nameserver address: {nameserver}")
        if not resolver.probe_domain:
            errors.append("No probe domain configured")

        if self._config.schedule.interval_seconds <= 0:
            errors.append("Schedule interval must be positive")

        email = self._config.notifications.email
        if email is not None:
            if not email.smtp_host:
                errors.append("Email notifications enabled but SMTP host is empty")
            if not email.to_addresses:
                errors.append("Email notifications enabled but no recipients configured")
            if not (email.username and email.password):
                warnings.append("SMTP credentials not set - alerts will only be logged")
        if self._config.notifications.webhook is not None:
            if not self._config.notifications.webhook.url.startswith(("http://", "https://")):
                errors.append("Webhook URL must be http(s)")
        if email is None and self._config.notifications.webhook is None:
            warnings.append("No notification channel configured")

        if not self._config.persistence.hmac_secret:
            errors.append("HMAC secret is not configured")
        elif self._config.persistence.hmac_secret == "default-secret-change-me":
            warnings.append("HMAC secret is using default value - please change for production")

        if self._config.retry.max_retries < 1:
            warnings.append("max_retries is less than 1 - notifications will not be retried")

        return ConfigValidationResult(valid=not errors, errors=errors, warnings=warnings)

    async def _probe_resolver(self) -> ProbeResult:
        start_time = time.perf_counter()
        target = self._config.resolver.probe_domain
        outcome = await self._resolver.query(target, "A")
        return ProbeResult(
            target=target,
            probe_type="dns",
            success=outcome.ok and bool(outcome.values),
            response_time_ms=self._elapsed_ms(start_time),
            error=outcome.error or (None if outcome.values else "No A records returned"),
            answers=list(outcome.values or []),
        )

    async def _probe_smtp(self) -> ProbeResult:
        start_time = time.perf_counter()
        email = self._config.notifications.email
        target = f"{email.smtp_host}:{email.smtp_port}"
        success = await self._email_channel.verify_connection()
        return ProbeResult(
            target=target,
            probe_type="smtp",
            success=success,
            response_time_ms=self._elapsed_ms(start_time),
            error=None if success else "SMTP connection check failed",
        )

    def _elapsed_ms(self, start_time: float) -> float:
        return (time.perf_counter() - start_time) * 1000

    def print_results(self, result: SelfTestResult) -> None:
        """Print self-test results to stdout."""
        print("DNS Monitor self-test")
        print("=" * 60)

        print("\nConfiguration:")
        if result.config_validation.valid:
            print("  ✓ Configuration is valid")
        else:
            print("  ✗ Configuration is invalid")
            for error in result.config_validation.errors:
                print(f"    - {error}")

        if result.config_validation.warnings:
            print("\n  Warnings:")
            for warning in result.config_validation.warnings:
                print(f"    - {warning}")

        if result.probe_results:
            print("\nConnectivity:")
            for probe in result.probe_results:
                status = "✓" if probe.success else "✗"
                print(
                    f"  {status} {probe.probe_type.upper()}: {probe.target} "
                    f"({probe.response_time_ms:.0f}ms)"
                )
                if probe.error:
                    print(f"      Error: {probe.error}")

        print(f"\n{'-' * 60}")
        print("✓ Self-test passed" if result.success else "✗ Self-test failed")
        print(f"  Duration: {result.total_duration_ms:.0f}ms")


async def run_self_test(config: SystemConfig, print_output: bool = True) -> SelfTestResult:
    """Convenience function to run the self-test."""
    self_test = SelfTest(config)
    result = await self_test.run()
    if print_output:
        self_test.print_results(result)
    return result
