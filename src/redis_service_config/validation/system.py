"""
redis-service-config — system validator.

File: src/redis_service_config/validation/system.py
Last updated: 2026-10-18

Purpose
- Validate monitoring, performance, advanced and metadata settings.

What should be included in this file
- Health-check and log-sink rules.
- Auto-restart, memory-threshold and slow-log rules.
- Custom startup args, environment overrides and lifecycle hook scripts.
- Metadata version/author/timestamp rules.

Functional requirements
- Memory warning threshold must be strictly below the error threshold.
- Metadata timestamps must not lie in the future; modified must not precede created.

Non-functional requirements
- ``now`` is supplied by the caller so the rule set stays pure.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import PureWindowsPath
from typing import Final

from redis_service_config.config.model import (
    AdvancedSettings,
    Metadata,
    MonitoringSettings,
    PerformanceSettings,
    ServiceConfiguration,
)
from redis_service_config.constants import DEFAULTS, ConfigDefaults
from redis_service_config.validation.common import is_valid_path
from redis_service_config.validation.result import IssueCollector, ValidationResult, join_path

MIN_RECOMMENDED_HEALTH_INTERVAL: Final[int] = 10
MAX_RECOMMENDED_HEALTH_INTERVAL: Final[int] = 300
MAX_RECOMMENDED_LOG_SIZE_MB: Final[int] = 100
MAX_RECOMMENDED_RESTART_ATTEMPTS: Final[int] = 10
MAX_RECOMMENDED_COOLDOWN: Final[int] = 300
HIGH_MEMORY_WARNING_THRESHOLD: Final[int] = 90
MIN_RECOMMENDED_SLOW_LOG_MS: Final[int] = 1000
MAX_RECOMMENDED_STARTUP_ARGS: Final[int] = 50
MAX_RECOMMENDED_ENVIRONMENT_VARIABLES: Final[int] = 100


def validate_system(
    config: ServiceConfiguration,
    defaults: ConfigDefaults = DEFAULTS,
    *,
    now: datetime | None = None,
) -> ValidationResult:
    issues = IssueCollector()
    current = now if now is not None else datetime.now(UTC)

    _validate_monitoring(config.monitoring, defaults, issues)
    _validate_performance(config.performance, issues)
    _validate_advanced(config.advanced, defaults, issues)
    _validate_metadata(config.metadata, current, issues)

    return issues.result()


def _validate_monitoring(
    monitoring: MonitoringSettings, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    path = "monitoring"
    interval_path = join_path(path, "healthCheckInterval")
    if monitoring.enable_health_check:
        if monitoring.health_check_interval <= 0:
            issues.error(interval_path, "health check interval must be positive")
        elif monitoring.health_check_interval < MIN_RECOMMENDED_HEALTH_INTERVAL:
            issues.info(interval_path, "health checks more often than every 10s add load")
        elif monitoring.health_check_interval > MAX_RECOMMENDED_HEALTH_INTERVAL:
            issues.info(
                interval_path,
                "health checks less often than every 5 minutes detect failures late",
            )
        if monitoring.health_check_timeout <= 0:
            issues.error(
                join_path(path, "healthCheckTimeout"),
                "health check timeout must be positive",
            )
    else:
        issues.warning(
            join_path(path, "enableHealthCheck"),
            "health checks are disabled; failures will not be detected",
        )

    log_path = join_path(path, "logFilePath")
    if monitoring.enable_file_logging and not is_valid_path(monitoring.log_file_path):
        issues.error(log_path, f"invalid log file path {monitoring.log_file_path!r}")

    if not monitoring.enable_file_logging and not monitoring.enable_windows_event_log:
        issues.warning(
            join_path(path, "enableFileLogging"),
            "both file logging and event log are disabled; nothing will be recorded",
        )

    level_path = join_path(path, "logLevel")
    if monitoring.log_level not in defaults.monitoring_log_levels:
        expected = ", ".join(sorted(defaults.monitoring_log_levels))
        issues.error(
            level_path,
            f"invalid log level {monitoring.log_level!r}; expected one of: {expected}",
        )
    elif monitoring.log_level == "Debug":
        issues.warning(
            level_path,
            "debug logging produces large logs and may expose sensitive data",
        )

    size_path = join_path(path, "maxLogSizeMB")
    if monitoring.max_log_size_mb <= 0:
        issues.error(size_path, "maximum log size must be positive")
    elif monitoring.max_log_size_mb > MAX_RECOMMENDED_LOG_SIZE_MB:
        issues.info(
            size_path,
            f"log files larger than {MAX_RECOMMENDED_LOG_SIZE_MB}MB are hard to inspect",
        )

    if monitoring.max_log_files <= 0:
        issues.error(join_path(path, "maxLogFiles"), "maximum log file count must be positive")


def _validate_performance(performance: PerformanceSettings, issues: IssueCollector) -> None:
    path = "performance"
    if performance.enable_auto_restart:
        attempts_path = join_path(path, "maxRestartAttempts")
        if performance.max_restart_attempts <= 0:
            issues.error(attempts_path, "maximum restart attempts must be positive")
        elif performance.max_restart_attempts > MAX_RECOMMENDED_RESTART_ATTEMPTS:
            issues.info(attempts_path, "many restart attempts can hide a persistent failure")

        cooldown_path = join_path(path, "restartCooldown")
        if performance.restart_cooldown < 0:
            issues.error(cooldown_path, "restart cooldown must not be negative")
        elif performance.restart_cooldown > MAX_RECOMMENDED_COOLDOWN:
            issues.info(cooldown_path, "restart cooldown is longer than five minutes")
    else:
        issues.warning(
            join_path(path, "enableAutoRestart"),
            "auto-restart is disabled; a crashed Redis stays down",
        )

    warning_path = join_path(path, "memoryWarningThreshold")
    error_path = join_path(path, "memoryErrorThreshold")
    warning_ok = _percentage(performance.memory_warning_threshold, warning_path, issues)
    error_ok = _percentage(performance.memory_error_threshold, error_path, issues)
    if warning_ok and error_ok:
        if performance.memory_warning_threshold >= performance.memory_error_threshold:
            issues.error(
                join_path(path, "memoryThresholds"),
                "memory warning threshold must be lower than the error threshold",
            )
        elif performance.memory_warning_threshold > HIGH_MEMORY_WARNING_THRESHOLD:
            issues.info(warning_path, "a warning threshold above 90% leaves little reaction time")

    if performance.enable_slow_log_monitoring:
        slow_path = join_path(path, "slowLogThreshold")
        if performance.slow_log_threshold <= 0:
            issues.error(slow_path, "slow log threshold must be positive")
        elif performance.slow_log_threshold < MIN_RECOMMENDED_SLOW_LOG_MS:
            issues.info(slow_path, "a slow log threshold under 1000ms records many commands")


def _validate_advanced(
    advanced: AdvancedSettings, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    path = "advanced"

    args_path = join_path(path, "customStartupArgs")
    for index, arg in enumerate(advanced.custom_startup_args):
        if not arg.strip():
            issues.error(join_path(args_path, index), "startup argument must not be empty")
    if len(advanced.custom_startup_args) > MAX_RECOMMENDED_STARTUP_ARGS:
        issues.info(args_path, f"more than {MAX_RECOMMENDED_STARTUP_ARGS} custom startup arguments")
    if advanced.custom_startup_args:
        issues.info(args_path, "custom startup arguments are passed to redis-server unchanged")

    env_path = join_path(path, "environmentVariables")
    for key, _value in advanced.environment_variables:
        if not key.strip():
            issues.error(env_path, "environment variable name must not be empty")
        elif key.upper() in defaults.reserved_environment_names:
            issues.warning(
                join_path(env_path, key),
                f"overriding system environment variable {key!r} may break the service",
            )
    if len(advanced.environment_variables) > MAX_RECOMMENDED_ENVIRONMENT_VARIABLES:
        issues.info(
            env_path,
            f"more than {MAX_RECOMMENDED_ENVIRONMENT_VARIABLES} environment variables",
        )
    if advanced.environment_variables:
        issues.info(env_path, "custom environment variables are applied to the Redis process")

    any_script = False
    for key, script in advanced.scripts():
        if not script.strip():
            continue
        any_script = True
        script_path = join_path(path, key)
        if not is_valid_path(script):
            issues.error(script_path, f"invalid script path {script!r}")
            continue
        suffix = PureWindowsPath(script.strip()).suffix.lower()
        if suffix not in defaults.script_extensions:
            expected = ", ".join(sorted(defaults.script_extensions))
            issues.info(
                script_path,
                f"unusual script extension {suffix or '(none)'!r}; expected {expected}",
            )
    if any_script:
        issues.info(path, "lifecycle hook scripts run with the service account's privileges")


def _validate_metadata(metadata: Metadata, now: datetime, issues: IssueCollector) -> None:
    path = "metadata"
    if not metadata.config_version.strip():
        issues.error(join_path(path, "configVersion"), "config version must not be empty")
    if not metadata.created_by.strip():
        issues.error(join_path(path, "createdBy"), "author must not be empty")

    created = _aware(metadata.created_date)
    modified = _aware(metadata.last_modified_date)
    if created is not None and created > now:
        issues.error(join_path(path, "createdDate"), "created date is in the future")
    if modified is not None and modified > now:
        issues.error(join_path(path, "lastModifiedDate"), "last modified date is in the future")
    if created is not None and modified is not None and modified < created:
        issues.error(join_path(path, "dates"), "last modified date is before the created date")


def _percentage(value: int, path: str, issues: IssueCollector) -> bool:
    if 0 <= value <= 100:
        return True
    issues.error(path, "threshold must be between 0 and 100")
    return False


def _aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=UTC)
    return value


__all__ = ["validate_system"]
