"""
redis-service-config — validation result types.

File: src/redis_service_config/validation/result.py
Last updated: 2026-10-18

Purpose
- Define the severity scale, single issues, and the combinable validation result.

What should be included in this file
- ``Severity`` ordered enum, ``ValidationIssue``, ``ValidationResult``.
- ``IssueCollector`` used by rule sets to accumulate issues in encounter order.

Functional requirements
- ``success`` is true iff no issue has severity error or critical.
- ``combine`` concatenates issues in operand order; success is the AND of operands.

Non-functional requirements
- Immutable values; no deduplication of issues on the same path.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Final


class Severity(StrEnum):
    """Issue severity, ordered from least to most serious."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def is_failure(self) -> bool:
        return self in (Severity.ERROR, Severity.CRITICAL)


_SEVERITY_RANK: Final[dict[Severity, int]] = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
    Severity.CRITICAL: 3,
}


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Single structured finding against a dotted property path."""

    path: str
    message: str
    severity: Severity

    def render(self) -> str:
        return f"- {self.path}: [{self.severity}] {self.message}"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Ordered issues from one or more rule sets."""

    issues: tuple[ValidationIssue, ...] = ()

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(())

    @classmethod
    def of(cls, path: str, message: str, severity: Severity) -> ValidationResult:
        return cls((ValidationIssue(path=path, message=message, severity=severity),))

    @property
    def success(self) -> bool:
        return not any(issue.severity.is_failure for issue in self.issues)

    def combine(self, other: ValidationResult) -> ValidationResult:
        if not other.issues:
            return self
        if not self.issues:
            return other
        return ValidationResult(self.issues + other.issues)

    def by_severity(self, severity: Severity) -> tuple[ValidationIssue, ...]:
        return tuple(issue for issue in self.issues if issue.severity is severity)

    def has_severity(self, severity: Severity) -> bool:
        return any(issue.severity is severity for issue in self.issues)

    def for_path(self, path: str) -> tuple[ValidationIssue, ...]:
        return tuple(issue for issue in self.issues if issue.path == path)

    @property
    def criticals(self) -> tuple[ValidationIssue, ...]:
        return self.by_severity(Severity.CRITICAL)

    @property
    def errors(self) -> tuple[ValidationIssue, ...]:
        return self.by_severity(Severity.ERROR)

    @property
    def warnings(self) -> tuple[ValidationIssue, ...]:
        return self.by_severity(Severity.WARNING)

    @property
    def infos(self) -> tuple[ValidationIssue, ...]:
        return self.by_severity(Severity.INFO)

    def render(self) -> str:
        if not self.issues:
            return "no issues"
        return "\n".join(issue.render() for issue in self.issues)


def combine_all(results: Iterable[ValidationResult]) -> ValidationResult:
    """Left fold of ``ValidationResult.combine`` starting from an empty result."""

    combined = ValidationResult.ok()
    for result in results:
        combined = combined.combine(result)
    return combined


class IssueCollector:
    """Mutable accumulator used while a rule set runs; frozen via ``result()``."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ValidationIssue] = []

    def add(self, path: str, message: str, severity: Severity) -> None:
        self._items.append(ValidationIssue(path=path, message=message, severity=severity))

    def info(self, path: str, message: str) -> None:
        self.add(path, message, Severity.INFO)

    def warning(self, path: str, message: str) -> None:
        self.add(path, message, Severity.WARNING)

    def error(self, path: str, message: str) -> None:
        self.add(path, message, Severity.ERROR)

    def critical(self, path: str, message: str) -> None:
        self.add(path, message, Severity.CRITICAL)

    def extend(self, result: ValidationResult) -> None:
        self._items.extend(result.issues)

    def result(self) -> ValidationResult:
        return ValidationResult(tuple(self._items))

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def join_path(path: str, key: str | int) -> str:
    """Append a mapping key (``a.b``) or list index (``a[0]``) to a dotted path."""

    if isinstance(key, int):
        return f"{path}[{key}]"
    if not path:
        return key
    return f"{path}.{key}"


__all__ = [
    "IssueCollector",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "combine_all",
    "join_path",
]
