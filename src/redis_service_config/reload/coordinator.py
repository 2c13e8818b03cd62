"""
redis-service-config — hot-reload coordinator.

File: src/redis_service_config/reload/coordinator.py
Last updated: 2026-10-18

Purpose
- Turn "the configuration file changed" into a publish, a deferred restart, or a rejection,
  without ever exposing a partially applied configuration.

What should be included in this file
- ``ReloadStatus`` / ``ReloadOutcome`` result types.
- ``ReloadCoordinator`` running read -> migrate -> resolve -> validate -> analyze ->
  publish-or-defer, with per-path coalescing and an optional timeout.
- Pending-restart bookkeeping acknowledged by the process supervisor.

Functional requirements
- At most one reload per path is in flight; concurrent requests share its outcome.
- Timeouts and load failures leave the cache untouched.
- A change that needs a restart is held as pending; the cache keeps serving the old value.

Non-functional requirements
- File I/O runs on a worker thread; the event loop is never blocked on disk.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog

from redis_service_config.config.loader import ConfigurationManager, LoadedCandidate
from redis_service_config.config.model import ServiceConfiguration
from redis_service_config.errors import ConfigError, SecretUnavailable
from redis_service_config.reload.cache import ConfigurationCache
from redis_service_config.reload.changes import (
    ChangeAnalyzer,
    ChangeClassification,
    ChangeReport,
)
from redis_service_config.utils.concurrency import (
    CancellationToken,
    KeyedSingleFlight,
    run_with_timeout,
)
from redis_service_config.utils.fs import PathLike
from redis_service_config.validation.result import Severity, ValidationIssue, ValidationResult


class ReloadStatus(StrEnum):
    APPLIED = "applied"
    DEFERRED = "deferred"
    REJECTED = "rejected"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ReloadOutcome:
    """What a reload did. ``config`` is the configuration being served afterwards."""

    path: Path
    status: ReloadStatus
    classification: ChangeClassification | None
    config: ServiceConfiguration | None
    issues: tuple[ValidationIssue, ...] = ()
    report: ChangeReport | None = None
    error: str | None = None

    @property
    def published(self) -> bool:
        return self.status is ReloadStatus.APPLIED


class ReloadCoordinator:
    """Serialize and classify configuration reloads per file path."""

    def __init__(
        self,
        manager: ConfigurationManager,
        analyzer: ChangeAnalyzer | None = None,
        cache: ConfigurationCache | None = None,
        *,
        default_timeout_seconds: float | None = None,
        logger: Any | None = None,
    ) -> None:
        self._manager = manager
        self._analyzer = analyzer if analyzer is not None else ChangeAnalyzer(manager.validator)
        self._cache = cache if cache is not None else manager.cache
        self._default_timeout = default_timeout_seconds
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._flights: KeyedSingleFlight[str, ReloadOutcome] = KeyedSingleFlight()
        self._pending: dict[str, LoadedCandidate] = {}

    @property
    def cache(self) -> ConfigurationCache:
        return self._cache

    def is_reloading(self, path: PathLike) -> bool:
        return self._flights.is_in_flight(self._cache.key_for(path))

    async def reload(
        self,
        path: PathLike,
        timeout_seconds: float | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ReloadOutcome:
        """Reload ``path``; callers arriving while a reload runs share its outcome."""

        key = self._cache.key_for(path)
        timeout = timeout_seconds if timeout_seconds is not None else self._default_timeout
        return await self._flights.run(
            key, lambda: self._reload_once(Path(path), timeout, cancel_token)
        )

    async def notify_changed(self, path: PathLike) -> ReloadOutcome:
        """Entry point for file-system change notifications."""

        self._logger.debug("config_change_notified", path=str(path))
        return await self.reload(path)

    def pending_restart(self, path: PathLike) -> ServiceConfiguration | None:
        candidate = self._pending.get(self._cache.key_for(path))
        return candidate.config if candidate is not None else None

    def acknowledge_restart(self, path: PathLike) -> ServiceConfiguration | None:
        """Publish the deferred candidate for ``path`` after the supervisor restarted Redis."""

        key = self._cache.key_for(path)
        candidate = self._pending.pop(key, None)
        if candidate is None:
            self._logger.debug("config_restart_acknowledged_without_pending", path=key)
            return None
        self._publish(candidate)
        self._logger.info("config_restart_acknowledged", path=key)
        return candidate.config

    async def _reload_once(
        self,
        path: Path,
        timeout_seconds: float | None,
        cancel_token: CancellationToken | None,
    ) -> ReloadOutcome:
        key = self._cache.key_for(path)
        read = asyncio.to_thread(self._manager.read_candidate, path)
        try:
            if timeout_seconds is None:
                candidate = await read
            else:
                candidate = await run_with_timeout(read, timeout_seconds, cancel_token)
        except TimeoutError as exc:
            return self._failed(path, f"reload timed out: {exc}")
        except SecretUnavailable as exc:
            return self._rejected_secret(path, exc)
        except ConfigError as exc:
            return self._failed(path, str(exc))

        previous = self._cache.get(path)
        if previous is None:
            return self._initial_load(path, candidate)

        report = self._analyzer.analyze(previous, candidate.config)
        classification = report.classification
        issues = report.validation.issues

        if classification is ChangeClassification.REJECTED:
            self._logger.warning(
                "config_reload_rejected",
                path=key,
                errors=len(report.validation.errors),
                criticals=len(report.validation.criticals),
            )
            return ReloadOutcome(
                path=path,
                status=ReloadStatus.REJECTED,
                classification=classification,
                config=previous,
                issues=issues,
                report=report,
            )

        if classification is ChangeClassification.REQUIRES_RESTART:
            self._pending[key] = candidate
            self._logger.warning(
                "config_reload_deferred",
                path=key,
                classification=classification.label,
                changed=list(report.changed_paths()),
            )
            return ReloadOutcome(
                path=path,
                status=ReloadStatus.DEFERRED,
                classification=classification,
                config=previous,
                issues=issues,
                report=report,
            )

        # A hot or empty diff supersedes any restart that was waiting.
        self._pending.pop(key, None)
        self._publish(candidate)
        if classification is ChangeClassification.NO_CHANGE:
            self._logger.debug("config_reload_unchanged", path=key)
            status = ReloadStatus.UNCHANGED
        else:
            self._logger.info(
                "config_reload_applied",
                path=key,
                classification=classification.label,
                changed=list(report.changed_paths()),
                warnings=len(report.validation.warnings),
            )
            status = ReloadStatus.APPLIED
        return ReloadOutcome(
            path=path,
            status=status,
            classification=classification,
            config=candidate.config,
            issues=issues,
            report=report,
        )

    def _initial_load(self, path: Path, candidate: LoadedCandidate) -> ReloadOutcome:
        result = self._manager.validate(candidate.config)
        if not result.success:
            self._logger.warning("config_reload_rejected", path=str(path), initial=True)
            return ReloadOutcome(
                path=path,
                status=ReloadStatus.REJECTED,
                classification=ChangeClassification.REJECTED,
                config=None,
                issues=result.issues,
            )
        self._publish(candidate)
        self._logger.info("config_reload_applied", path=str(path), initial=True)
        return ReloadOutcome(
            path=path,
            status=ReloadStatus.APPLIED,
            classification=ChangeClassification.HOT_APPLICABLE,
            config=candidate.config,
            issues=result.issues,
        )

    def _publish(self, candidate: LoadedCandidate) -> None:
        self._cache.put(candidate.path, candidate.config, candidate.fingerprint)

    def _rejected_secret(self, path: Path, exc: SecretUnavailable) -> ReloadOutcome:
        issue_path = exc.path or "redis.password"
        result = ValidationResult.of(
            issue_path,
            f"secret {exc.source}:{exc.identifier} could not be resolved",
            Severity.CRITICAL,
        )
        self._logger.warning(
            "config_reload_rejected",
            path=str(path),
            source=exc.source,
            identifier=exc.identifier,
        )
        return ReloadOutcome(
            path=path,
            status=ReloadStatus.REJECTED,
            classification=ChangeClassification.REJECTED,
            config=self._cache.get(path),
            issues=result.issues,
            error=str(exc),
        )

    def _failed(self, path: Path, error: str) -> ReloadOutcome:
        self._logger.error("config_reload_failed", path=str(path), error=error)
        return ReloadOutcome(
            path=path,
            status=ReloadStatus.FAILED,
            classification=None,
            config=self._cache.get(path),
            error=error,
        )


__all__ = ["ReloadCoordinator", "ReloadOutcome", "ReloadStatus"]
