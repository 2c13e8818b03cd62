"""
redis-service-config — configuration change analysis.

File: src/redis_service_config/reload/changes.py
Last updated: 2026-10-18

Purpose
- Diff a running configuration against a candidate and decide whether the candidate can be
  applied live, needs a process restart, or must be rejected.

What should be included in this file
- ``ChangeClassification`` ordered by restrictiveness.
- ``ChangedProperty`` / ``ChangeReport`` value types with a rendered summary.
- ``ChangeAnalyzer`` combining a field-level diff with candidate validation.

Functional requirements
- The overall classification is the most restrictive per-group classification.
- A candidate that fails validation is rejected regardless of what changed.
- Secret values never appear in changed-property old/new values.

Non-functional requirements
- Pure and synchronous; safe to call from any thread.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any, Final

import structlog

from redis_service_config.config.document import encode_configuration
from redis_service_config.config.model import ServiceConfiguration
from redis_service_config.security.redaction import is_sensitive_key, redact_text
from redis_service_config.validation.orchestrator import ConfigurationValidator
from redis_service_config.validation.result import ValidationIssue, ValidationResult, join_path

SECRET_PLACEHOLDER: Final[str] = "[REDACTED]"
MEDIUM_IMPACT_CHANGE_COUNT: Final[int] = 5


class ChangeClassification(IntEnum):
    """Outcome of comparing two configurations, ordered by restrictiveness."""

    NO_CHANGE = 0
    HOT_APPLICABLE = 1
    REQUIRES_RESTART = 2
    REJECTED = 3

    @property
    def label(self) -> str:
        return self.name.lower()


class ChangeImpact(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_RESTART_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "redis.port",
        "redis.bindAddress",
        "redis.maxMemory",
        "redis.maxMemoryPolicy",
        "redis.enablePersistence",
        "redis.persistenceMode",
        "redis.enableAOF",
        "service.serviceName",
        "service.startType",
        "service.delayedAutoStart",
    }
)

_HIGH_IMPACT_FIELDS: Final[frozenset[str]] = frozenset(
    {"backendType", "redis.port", "service.serviceName"}
)

_BACKEND_KEYS: Final[frozenset[str]] = frozenset({"backendType", "wsl", "docker"})


@dataclass(frozen=True, slots=True)
class ChangedProperty:
    path: str
    group: str
    old: Any
    new: Any
    classification: ChangeClassification

    def render(self) -> str:
        return f"{self.path}: {self.old!r} -> {self.new!r} ({self.classification.label})"


@dataclass(frozen=True, slots=True)
class ChangeReport:
    """Result of analyzing a candidate against the running configuration."""

    classification: ChangeClassification
    changes: tuple[ChangedProperty, ...]
    validation: ValidationResult
    impact: ChangeImpact
    groups: dict[str, ChangeClassification] = field(default_factory=dict)

    @property
    def is_safe_to_apply(self) -> bool:
        return self.classification in (
            ChangeClassification.NO_CHANGE,
            ChangeClassification.HOT_APPLICABLE,
        )

    @property
    def requires_restart(self) -> bool:
        return self.classification is ChangeClassification.REQUIRES_RESTART

    @property
    def warnings(self) -> tuple[ValidationIssue, ...]:
        return self.validation.warnings

    def changed_paths(self) -> tuple[str, ...]:
        return tuple(change.path for change in self.changes)

    def summary(self) -> str:
        headline = {
            ChangeClassification.NO_CHANGE: "NO CHANGE",
            ChangeClassification.HOT_APPLICABLE: "Safe to apply",
            ChangeClassification.REQUIRES_RESTART: "REQUIRES RESTART",
            ChangeClassification.REJECTED: "REJECTED",
        }[self.classification]
        lines = [
            f"{headline} | {self.impact} impact | {len(self.changes)} changes"
            f" | {len(self.validation.warnings)} warnings"
        ]
        lines.extend(f"  {change.render()}" for change in self.changes)
        if self.classification is ChangeClassification.REJECTED:
            failing = self.validation.criticals + self.validation.errors
            lines.extend(f"  {issue.render()}" for issue in failing)
        return redact_text("\n".join(lines))


class ChangeAnalyzer:
    """Classify the difference between two configurations."""

    def __init__(
        self,
        validator: ConfigurationValidator | None = None,
        *,
        logger: Any | None = None,
    ) -> None:
        self._validator = validator if validator is not None else ConfigurationValidator()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def validator(self) -> ConfigurationValidator:
        return self._validator

    def analyze(
        self, previous: ServiceConfiguration, candidate: ServiceConfiguration
    ) -> ChangeReport:
        validation = self._validator.validate(candidate)
        changes = diff_configurations(previous, candidate)

        groups: dict[str, ChangeClassification] = {}
        for change in changes:
            current = groups.get(change.group, ChangeClassification.NO_CHANGE)
            groups[change.group] = max(current, change.classification)

        if not validation.success:
            classification = ChangeClassification.REJECTED
        else:
            classification = max(groups.values(), default=ChangeClassification.NO_CHANGE)

        report = ChangeReport(
            classification=classification,
            changes=changes,
            validation=validation,
            impact=_impact(changes),
            groups=groups,
        )
        self._logger.info(
            "config_change_analyzed",
            classification=classification.label,
            impact=str(report.impact),
            changes=len(changes),
            groups=sorted(groups),
            warnings=len(validation.warnings),
        )
        return report


def diff_configurations(
    previous: ServiceConfiguration, candidate: ServiceConfiguration
) -> tuple[ChangedProperty, ...]:
    """Field-level differences in document path order; secrets are masked."""

    before = _flatten(encode_configuration(previous))
    after = _flatten(encode_configuration(candidate))
    secret_paths = {
        binding.dotted
        for config in (previous, candidate)
        for binding in config.secret_bindings
    }

    changes: list[ChangedProperty] = []
    for path in sorted(before.keys() | after.keys()):
        old = before.get(path)
        new = after.get(path)
        if old == new and (path in before) == (path in after):
            continue
        if _holds_secret(path, secret_paths) or (
            _is_secret_path(path) and _is_secret_value(old, new)
        ):
            old, new = SECRET_PLACEHOLDER, SECRET_PLACEHOLDER
        changes.append(
            ChangedProperty(
                path=path,
                group=group_of(path),
                old=old,
                new=new,
                classification=classify_path(path),
            )
        )
    return tuple(changes)


def group_of(path: str) -> str:
    head = path.split(".", 1)[0].split("[", 1)[0]
    if head in _BACKEND_KEYS:
        return "backend"
    if head == "schemaVersion":
        return "schema"
    return head


def classify_path(path: str) -> ChangeClassification:
    """Classification of a single changed document path."""

    if group_of(path) == "backend" or path in _RESTART_FIELDS:
        return ChangeClassification.REQUIRES_RESTART
    return ChangeClassification.HOT_APPLICABLE


def _impact(changes: tuple[ChangedProperty, ...]) -> ChangeImpact:
    if any(change.classification is ChangeClassification.REQUIRES_RESTART for change in changes):
        return ChangeImpact.CRITICAL
    if any(change.path in _HIGH_IMPACT_FIELDS for change in changes):
        return ChangeImpact.HIGH
    if len(changes) > MEDIUM_IMPACT_CHANGE_COUNT:
        return ChangeImpact.MEDIUM
    return ChangeImpact.LOW


def _holds_secret(path: str, secret_paths: set[str]) -> bool:
    # List values are diffed whole; their bindings point at elements.
    return path in secret_paths or any(
        secret.startswith(f"{path}[") for secret in secret_paths
    )


def _is_secret_path(path: str) -> bool:
    leaf = path.rsplit(".", 1)[-1]
    return is_sensitive_key(leaf)


def _is_secret_value(old: Any, new: Any) -> bool:
    # Flags such as requirePassword stay visible.
    return not isinstance(old, bool) and not isinstance(new, bool)


def _flatten(value: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    # Lists are compared as whole values; empty mappings contribute no paths.
    flat: dict[str, Any] = {}
    for key, item in value.items():
        path = join_path(prefix, key)
        if isinstance(item, Mapping):
            flat.update(_flatten(item, path))
        else:
            flat[path] = item
    return flat


__all__ = [
    "ChangeAnalyzer",
    "ChangeClassification",
    "ChangeImpact",
    "ChangeReport",
    "ChangedProperty",
    "SECRET_PLACEHOLDER",
    "classify_path",
    "diff_configurations",
    "group_of",
]
