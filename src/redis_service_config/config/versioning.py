"""
redis-service-config — schema version detection and migration.

File: src/redis_service_config/config/versioning.py
Last updated: 2026-10-18

Purpose
- Bring raw configuration documents written by older releases up to the current schema.

What should be included in this file
- ``detect_version`` honoring ``schemaVersion``, the legacy ``SchemaVersion``/``Version`` keys,
  and structural inference for documents that carry no version at all.
- Ordered, pure migration steps between consecutive known versions.
- Operator guidance for documents that cannot be migrated.

Functional requirements
- Steps never mutate their input.
- Unknown, future and malformed versions fail with ``ConfigLoadError``.

Non-functional requirements
- Document-level only; no model types, no file I/O.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping
from typing import Any, Final

import structlog

from redis_service_config.constants import (
    CURRENT_SCHEMA_VERSION,
    DEFAULTS,
    KNOWN_SCHEMA_VERSIONS,
    ConfigDefaults,
)
from redis_service_config.errors import ConfigLoadError

MigrationStep = Callable[[dict[str, Any], ConfigDefaults], dict[str, Any]]

LEGACY_VERSION_KEYS: Final[tuple[str, ...]] = ("SchemaVersion", "Version")

_SEMVER_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")

logger = structlog.get_logger(__name__)


def detect_version(document: Mapping[str, object]) -> str:
    """Return the schema version a raw document was written with."""

    for key in ("schemaVersion", *LEGACY_VERSION_KEYS):
        raw = document.get(key)
        if raw is None:
            continue
        if not isinstance(raw, str):
            raise ConfigLoadError(
                "unsupported schema version",
                issues=(f"{key}: expected string, got {type(raw).__name__}",),
            )
        return raw.strip()

    if "advanced" in document:
        return "1.2.0"
    if "performance" in document:
        return "1.1.0"
    return "1.0.0"


def migrate(
    document: Mapping[str, object], defaults: ConfigDefaults = DEFAULTS
) -> dict[str, Any]:
    """Return a copy of ``document`` upgraded to ``CURRENT_SCHEMA_VERSION``."""

    version = detect_version(document)
    _check_supported(version)

    migrated = copy.deepcopy(dict(document))
    for key in LEGACY_VERSION_KEYS:
        migrated.pop(key, None)
    migrated["schemaVersion"] = version

    start = KNOWN_SCHEMA_VERSIONS.index(version)
    for target in KNOWN_SCHEMA_VERSIONS[start + 1 :]:
        migrated = _STEPS[target](migrated, defaults)
        migrated["schemaVersion"] = target

    if version != CURRENT_SCHEMA_VERSION:
        logger.info("config_migrated", from_version=version, to_version=CURRENT_SCHEMA_VERSION)
    return migrated


def migration_guidance(version: str) -> str:
    """Operator-facing hint for a document at ``version``."""

    known = ", ".join(KNOWN_SCHEMA_VERSIONS)
    parsed = _parse_semver(version)
    if parsed is None:
        return (
            f"schemaVersion {version!r} is not a MAJOR.MINOR.PATCH version; "
            f"set it to one of: {known}"
        )
    if parsed > _parse_semver_strict(CURRENT_SCHEMA_VERSION):
        return (
            f"schema {version} is newer than this release supports ({CURRENT_SCHEMA_VERSION}); "
            "upgrade the service or re-create the file with this release"
        )
    if version not in KNOWN_SCHEMA_VERSIONS:
        return f"schema {version} was never released; known versions are: {known}"
    if version == CURRENT_SCHEMA_VERSION:
        return f"schema {version} is current; no migration needed"
    return f"schema {version} will be migrated to {CURRENT_SCHEMA_VERSION} on load"


def is_current(document: Mapping[str, object]) -> bool:
    return detect_version(document) == CURRENT_SCHEMA_VERSION


def _check_supported(version: str) -> None:
    if version in KNOWN_SCHEMA_VERSIONS:
        return
    raise ConfigLoadError(
        "unsupported schema version",
        issues=(f"schemaVersion: {migration_guidance(version)}",),
    )


def _add_performance_section(document: dict[str, Any], defaults: ConfigDefaults) -> dict[str, Any]:
    upgraded = copy.deepcopy(document)
    upgraded.setdefault(
        "performance",
        {
            "enableAutoRestart": True,
            "maxRestartAttempts": defaults.max_restart_attempts,
            "restartCooldown": defaults.restart_cooldown_seconds,
            "memoryWarningThreshold": defaults.memory_warning_threshold,
            "memoryErrorThreshold": defaults.memory_error_threshold,
            "enableSlowLogMonitoring": True,
            "slowLogThreshold": defaults.slow_log_threshold_ms,
        },
    )
    return upgraded


def _add_advanced_section(document: dict[str, Any], defaults: ConfigDefaults) -> dict[str, Any]:
    del defaults
    upgraded = copy.deepcopy(document)
    upgraded.setdefault(
        "advanced",
        {
            "customStartupArgs": [],
            "environmentVariables": {},
            "preStartScript": "",
            "postStartScript": "",
            "preStopScript": "",
            "postStopScript": "",
        },
    )
    return upgraded


_STEPS: Final[dict[str, MigrationStep]] = {
    "1.1.0": _add_performance_section,
    "1.2.0": _add_advanced_section,
}


def _parse_semver(version: str) -> tuple[int, int, int] | None:
    match = _SEMVER_PATTERN.fullmatch(version)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def _parse_semver_strict(version: str) -> tuple[int, int, int]:
    parsed = _parse_semver(version)
    if parsed is None:
        raise ValueError(f"not a semantic version: {version!r}")
    return parsed


__all__ = [
    "LEGACY_VERSION_KEYS",
    "MigrationStep",
    "detect_version",
    "is_current",
    "migrate",
    "migration_guidance",
]
