"""
redis-service-config — validator orchestrator.

File: src/redis_service_config/validation/orchestrator.py
Last updated: 2026-10-18

Purpose
- Compose the independent rule sets and the cross-cutting checks into one result/report.

What should be included in this file
- Fixed-order rule list: backend, datastore, lifecycle, system, then cross-cutting rules.
- Cross-cutting rules: backend notices, port notices, monitoring/performance alignment,
  security posture, defaults summary, production readiness.
- ``ValidationReport`` with the production-readiness predicate and a rendered summary.

Functional requirements
- Every rule runs even after an earlier one fails; issues are concatenated in rule order.
- Production readiness re-raises auth/persistence/debug warnings under one named path.

Non-functional requirements
- No I/O; the clock is injectable.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from functools import partial
from typing import Any, Final

import structlog

from redis_service_config.config.model import ServiceConfiguration
from redis_service_config.constants import DEFAULTS, ConfigDefaults
from redis_service_config.security.redaction import redact_text
from redis_service_config.validation.backend import NO_VOLUMES_MESSAGE, validate_backend
from redis_service_config.validation.common import parse_port_mapping
from redis_service_config.validation.datastore import validate_datastore
from redis_service_config.validation.lifecycle import validate_lifecycle
from redis_service_config.validation.result import (
    IssueCollector,
    Severity,
    ValidationIssue,
    ValidationResult,
    combine_all,
)
from redis_service_config.validation.system import validate_system

Rule = Callable[[ServiceConfiguration], ValidationResult]
Clock = Callable[[], datetime]

PRIVILEGED_PORT_LIMIT: Final[int] = 1024

SECURITY_AUTHENTICATION_PATH: Final[str] = "security.authentication"
SECURITY_NETWORK_PATH: Final[str] = "security.network"
SECURITY_LOGGING_PATH: Final[str] = "security.logging"
ALIGNMENT_PATH: Final[str] = "monitoring.alignment"
DEFAULTS_SUMMARY_PATH: Final[str] = "configuration.defaults"
PRODUCTION_READINESS_PATH: Final[str] = "production.readiness"

READINESS_NO_AUTH: Final[str] = "authentication is disabled"
READINESS_NO_PERSISTENCE: Final[str] = "persistence is disabled"
READINESS_DEBUG_LOGGING: Final[str] = "debug logging is enabled"


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """Outcome of a full validation pass over one configuration."""

    result: ValidationResult
    config: ServiceConfiguration
    timestamp: datetime
    summary: str

    @property
    def is_valid(self) -> bool:
        return self.result.success

    @property
    def is_production_ready(self) -> bool:
        return (
            self.result.success
            and not self.result.has_severity(Severity.WARNING)
            and not self.result.has_severity(Severity.CRITICAL)
        )

    @property
    def critical_issues(self) -> tuple[ValidationIssue, ...]:
        return self.result.criticals

    @property
    def error_count(self) -> int:
        return len(self.result.errors)

    @property
    def warning_count(self) -> int:
        return len(self.result.warnings)

    @property
    def info_count(self) -> int:
        return len(self.result.infos)

    @property
    def production_readiness_warnings(self) -> tuple[ValidationIssue, ...]:
        return self.result.for_path(PRODUCTION_READINESS_PATH)


class ConfigurationValidator:
    """Runs every rule set against one configuration and combines the results."""

    def __init__(
        self,
        defaults: ConfigDefaults = DEFAULTS,
        *,
        clock: Clock | None = None,
        logger: Any | None = None,
    ) -> None:
        self._defaults = defaults
        self._clock = clock if clock is not None else _utc_now
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def defaults(self) -> ConfigDefaults:
        return self._defaults

    def component_rules(self, now: datetime) -> tuple[Rule, ...]:
        defaults = self._defaults
        return (
            partial(validate_backend, defaults=defaults),
            partial(validate_datastore, defaults=defaults),
            partial(validate_lifecycle, defaults=defaults),
            partial(validate_system, defaults=defaults, now=now),
        )

    def cross_cutting_rules(self) -> tuple[Rule, ...]:
        return (
            self._backend_notices,
            self._port_notices,
            self._alignment_notices,
            self._security_posture,
            self._defaults_summary,
            self._production_readiness,
        )

    def validate(self, config: ServiceConfiguration) -> ValidationResult:
        rules = (*self.component_rules(self._clock()), *self.cross_cutting_rules())
        return combine_all(rule(config) for rule in rules)

    def validate_quick(self, config: ServiceConfiguration) -> ValidationResult:
        """Component rule sets only; skips the cross-cutting notices."""

        return combine_all(rule(config) for rule in self.component_rules(self._clock()))

    def validate_with_report(self, config: ServiceConfiguration) -> ValidationReport:
        timestamp = self._clock()
        result = self.validate(config)
        draft = ValidationReport(result=result, config=config, timestamp=timestamp, summary="")
        report = replace(draft, summary=render_summary(draft))
        self._logger.info(
            "config_validated",
            success=result.success,
            production_ready=report.is_production_ready,
            criticals=len(result.criticals),
            errors=report.error_count,
            warnings=report.warning_count,
            infos=report.info_count,
        )
        return report

    def _backend_notices(self, config: ServiceConfiguration) -> ValidationResult:
        issues = IssueCollector()
        wsl = config.wsl
        docker = config.docker
        if wsl is not None:
            issues.info(
                "wsl.distribution",
                f"make sure WSL distribution {wsl.distribution!r} is installed and up to date",
            )
        if docker is not None:
            issues.info("docker", "make sure Docker is installed and the daemon is running")
            if not docker.volume_mappings:
                issues.warning("docker.volumeMappings", NO_VOLUMES_MESSAGE)
            try:
                mapping = parse_port_mapping(docker.port_mapping)
            except ValueError:
                mapping = None
            if mapping is not None and mapping.host_port == config.redis.port:
                issues.info(
                    "docker.portMapping",
                    f"host port {mapping.host_port} is the same as redis.port",
                )
        return issues.result()

    def _port_notices(self, config: ServiceConfiguration) -> ValidationResult:
        port = config.redis.port
        if port == self._defaults.redis_port:
            return ValidationResult.of(
                "redis.port",
                "the default port is widely scanned; consider a non-standard port",
                Severity.INFO,
            )
        if 0 < port < PRIVILEGED_PORT_LIMIT:
            return ValidationResult.of(
                "redis.port",
                f"ports below {PRIVILEGED_PORT_LIMIT} need elevated privileges",
                Severity.WARNING,
            )
        return ValidationResult.ok()

    def _alignment_notices(self, config: ServiceConfiguration) -> ValidationResult:
        issues = IssueCollector()
        monitoring = config.monitoring
        performance = config.performance
        if monitoring.enable_health_check and not performance.enable_auto_restart:
            issues.info(
                ALIGNMENT_PATH,
                "health checks are enabled but auto-restart is disabled; "
                "failures will be detected but not remediated",
            )
        if (
            monitoring.enable_health_check
            and performance.enable_auto_restart
            and monitoring.health_check_interval > 2 * performance.restart_cooldown
        ):
            issues.info(
                ALIGNMENT_PATH,
                "health check interval is more than twice the restart cooldown",
            )
        return issues.result()

    def _security_posture(self, config: ServiceConfiguration) -> ValidationResult:
        issues = IssueCollector()
        if not config.redis.require_password:
            issues.warning(SECURITY_AUTHENTICATION_PATH, "Redis accepts unauthenticated clients")
        if config.redis.bind_address.strip() in ("127.0.0.1", "localhost", "::1"):
            issues.info(SECURITY_NETWORK_PATH, "Redis is bound to the loopback interface only")
        if _debug_logging(config):
            issues.warning(
                SECURITY_LOGGING_PATH,
                "debug logging is enabled; logs may expose sensitive data",
            )
        return issues.result()

    def _defaults_summary(self, config: ServiceConfiguration) -> ValidationResult:
        defaults = self._defaults
        unchanged: list[str] = []
        if config.redis.port == defaults.redis_port:
            unchanged.append("redis.port")
        if config.service.service_name == defaults.service_name:
            unchanged.append("service.serviceName")
        wsl = config.wsl
        docker = config.docker
        if wsl is not None and wsl.distribution == defaults.wsl_distribution:
            unchanged.append("wsl.distribution")
        if docker is not None and docker.image_name == defaults.docker_image:
            unchanged.append("docker.imageName")
        if docker is not None and docker.container_name == defaults.docker_container_name:
            unchanged.append("docker.containerName")
        if not unchanged:
            return ValidationResult.ok()
        return ValidationResult.of(
            DEFAULTS_SUMMARY_PATH,
            f"still using built-in defaults for: {', '.join(unchanged)}",
            Severity.INFO,
        )

    def _production_readiness(self, config: ServiceConfiguration) -> ValidationResult:
        issues = IssueCollector()
        if not config.redis.require_password:
            issues.warning(PRODUCTION_READINESS_PATH, READINESS_NO_AUTH)
        if not config.redis.enable_persistence:
            issues.warning(PRODUCTION_READINESS_PATH, READINESS_NO_PERSISTENCE)
        if _debug_logging(config):
            issues.warning(PRODUCTION_READINESS_PATH, READINESS_DEBUG_LOGGING)
        return issues.result()


def render_summary(report: ValidationReport) -> str:
    """Render a deterministic, operator-facing text summary of ``report``."""

    result = report.result
    lines = [
        f"Configuration validation {'PASSED' if result.success else 'FAILED'}",
        f"Checked at: {report.timestamp.isoformat()}",
        (
            f"Issues: {len(result.issues)} (critical {len(result.criticals)}, "
            f"errors {report.error_count}, warnings {report.warning_count}, "
            f"info {report.info_count})"
        ),
        f"Production ready: {'yes' if report.is_production_ready else 'no'}",
    ]
    failing = result.criticals + result.errors
    if failing:
        lines.append("Errors:")
        lines.extend(f"  - {issue.path}: {issue.message}" for issue in failing)
    if result.warnings:
        lines.append("Warnings:")
        lines.extend(f"  - {issue.path}: {issue.message}" for issue in result.warnings)
    return redact_text("\n".join(lines))


def _debug_logging(config: ServiceConfiguration) -> bool:
    return config.redis.log_level == "debug" or config.monitoring.log_level == "Debug"


__all__ = [
    "ALIGNMENT_PATH",
    "ConfigurationValidator",
    "DEFAULTS_SUMMARY_PATH",
    "PRODUCTION_READINESS_PATH",
    "READINESS_DEBUG_LOGGING",
    "READINESS_NO_AUTH",
    "READINESS_NO_PERSISTENCE",
    "Rule",
    "SECURITY_AUTHENTICATION_PATH",
    "SECURITY_LOGGING_PATH",
    "SECURITY_NETWORK_PATH",
    "ValidationReport",
    "render_summary",
]
