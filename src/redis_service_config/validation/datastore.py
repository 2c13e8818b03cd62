"""
redis-service-config — Redis (data store) validator.

File: src/redis_service_config/validation/datastore.py
Last updated: 2026-10-18

Purpose
- Validate networking, memory, persistence, authentication and logging settings of the
  managed Redis process.

Functional requirements
- Port outside [1, 65535] is an error naming the valid range.
- Memory limits are converted to bytes and sanity-checked (below 1 MiB / above 1 TiB warn).
- Required authentication with an empty or unresolved secret is critical.
- Password strength findings never fail validation.

Non-functional requirements
- Messages must never quote the password value.
"""

from __future__ import annotations

from typing import Final

from redis_service_config.config.model import RedisSettings, ServiceConfiguration
from redis_service_config.config.secrets import contains_token
from redis_service_config.constants import DEFAULTS, ConfigDefaults
from redis_service_config.validation.common import (
    MAX_PORT,
    MIN_PORT,
    is_valid_ip_address,
    parse_memory_size,
    port_in_range,
)
from redis_service_config.validation.result import IssueCollector, ValidationResult, join_path

MIN_SANE_MEMORY_BYTES: Final[int] = 1024**2
MAX_SANE_MEMORY_BYTES: Final[int] = 1024**4
MIN_PASSWORD_LENGTH: Final[int] = 8

_LOOPBACK_ADDRESSES: Final[frozenset[str]] = frozenset({"127.0.0.1", "localhost", "::1"})

_PATH = "redis"


def validate_datastore(
    config: ServiceConfiguration, defaults: ConfigDefaults = DEFAULTS
) -> ValidationResult:
    issues = IssueCollector()
    redis = config.redis

    _validate_port(redis, defaults, issues)
    _validate_bind_address(redis, defaults, issues)
    _validate_memory(redis, defaults, issues)
    _validate_persistence(redis, defaults, issues)
    _validate_authentication(redis, defaults, issues)
    _validate_log_level(redis, defaults, issues)

    return issues.result()


def _validate_port(redis: RedisSettings, defaults: ConfigDefaults, issues: IssueCollector) -> None:
    path = join_path(_PATH, "port")
    if not port_in_range(redis.port):
        issues.error(path, f"port must be between {MIN_PORT} and {MAX_PORT}, got {redis.port}")
    elif redis.port == defaults.redis_port:
        issues.info(path, f"using default Redis port {defaults.redis_port}")


def _validate_bind_address(
    redis: RedisSettings, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    path = join_path(_PATH, "bindAddress")
    address = redis.bind_address.strip()
    if not address:
        issues.error(path, "bind address must not be empty")
        return
    if address not in defaults.special_bind_addresses and not is_valid_ip_address(address):
        issues.error(path, f"invalid bind address {address!r}")
        return
    if address in _LOOPBACK_ADDRESSES:
        issues.info(path, "Redis accepts connections from this machine only")


def _validate_memory(
    redis: RedisSettings, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    path = join_path(_PATH, "maxMemory")
    try:
        size = parse_memory_size(redis.max_memory)
    except ValueError as exc:
        issues.error(path, str(exc))
    else:
        if size <= 0:
            issues.error(path, "memory limit must be positive")
        elif size < MIN_SANE_MEMORY_BYTES:
            issues.warning(path, "memory limit is below 1MiB; Redis may fail to store any data")
        elif size > MAX_SANE_MEMORY_BYTES:
            issues.warning(path, "memory limit is above 1TiB; verify the host has that much memory")

    policy_path = join_path(_PATH, "maxMemoryPolicy")
    if redis.max_memory_policy not in defaults.eviction_policies:
        expected = ", ".join(sorted(defaults.eviction_policies))
        issues.error(
            policy_path,
            f"invalid eviction policy {redis.max_memory_policy!r}; expected one of: {expected}",
        )


def _validate_persistence(
    redis: RedisSettings, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    if not redis.enable_persistence:
        issues.warning(
            join_path(_PATH, "enablePersistence"),
            "persistence is disabled; data will be lost when Redis restarts",
        )
        return

    mode_path = join_path(_PATH, "persistenceMode")
    if redis.persistence_mode not in defaults.persistence_modes:
        expected = ", ".join(sorted(defaults.persistence_modes))
        issues.error(
            mode_path,
            f"invalid persistence mode {redis.persistence_mode!r}; expected one of: {expected}",
        )
    elif redis.persistence_mode == "rdb" and redis.enable_aof:
        issues.info(
            join_path(_PATH, "enableAOF"),
            "AOF is enabled alongside RDB snapshots; consider persistenceMode 'both'",
        )


def _validate_authentication(
    redis: RedisSettings, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    password_path = join_path(_PATH, "password")
    password = redis.password

    if not redis.require_password:
        issues.warning(
            join_path(_PATH, "requirePassword"),
            "authentication is disabled; any client can connect",
        )
        if password:
            issues.warning(
                password_path,
                "a password is set but requirePassword is false; it will be ignored",
            )
        return

    if not password.strip():
        issues.critical(password_path, "password is required but not provided")
        return
    if contains_token(password):
        issues.critical(
            password_path,
            "password is required but its secret reference was not resolved",
        )
        return

    if len(password) < MIN_PASSWORD_LENGTH:
        issues.warning(
            password_path, f"password is shorter than {MIN_PASSWORD_LENGTH} characters"
        )
    if password.lower() in defaults.weak_passwords:
        issues.warning(password_path, "password is a commonly used weak value")

    missing = _missing_character_classes(password)
    if missing:
        issues.info(password_path, f"password strength: add {', '.join(missing)} characters")


def _validate_log_level(
    redis: RedisSettings, defaults: ConfigDefaults, issues: IssueCollector
) -> None:
    path = join_path(_PATH, "logLevel")
    if redis.log_level not in defaults.redis_log_levels:
        expected = ", ".join(sorted(defaults.redis_log_levels))
        issues.error(path, f"invalid log level {redis.log_level!r}; expected one of: {expected}")
    elif redis.log_level == "debug":
        issues.warning(path, "debug logging slows Redis down and may expose sensitive data")


def _missing_character_classes(password: str) -> list[str]:
    missing: list[str] = []
    if not any(char.isupper() for char in password):
        missing.append("uppercase")
    if not any(char.islower() for char in password):
        missing.append("lowercase")
    if not any(char.isdigit() for char in password):
        missing.append("digit")
    if all(char.isalnum() for char in password):
        missing.append("special")
    return missing


__all__ = ["MIN_PASSWORD_LENGTH", "validate_datastore"]
