"""
redis-service-config — unit tests for the hot-reload coordinator

File: tests/unit/reload/test_coordinator.py
Last updated: 2026-10-18

Purpose
- Verify that reloads publish, defer or reject without exposing partial state.

What this test file should cover
- Initial load, unchanged reloads and hot-applicable publishes.
- Restart-requiring changes held as pending until acknowledged.
- Invalid candidates, unresolved required secrets, malformed files and timeouts
  leaving the cache untouched.
- Concurrent reloads of one path sharing a single read.

Functional requirements
- Offline only; files live in a temporary directory and secrets in an in-memory environment.

Non-functional requirements
- Timing-based tests use short sleeps with generous margins.
"""

from __future__ import annotations

import asyncio
import json
import threading
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest

from redis_service_config.config.factory import default_document
from redis_service_config.config.loader import ConfigurationManager, LoadedCandidate
from redis_service_config.config.model import BackendKind
from redis_service_config.config.secrets import EnvironmentLookup, SecretResolver, SecretSource
from redis_service_config.reload.changes import ChangeClassification
from redis_service_config.reload.coordinator import ReloadCoordinator, ReloadStatus
from redis_service_config.security.redaction import clear_secret_values
from redis_service_config.utils.fs import PathLike
from redis_service_config.validation.result import Severity

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class _SlowManager(ConfigurationManager):
    def __init__(self, delay: float, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.delay = delay
        self.reads = 0
        self._count_lock = threading.Lock()

    def read_candidate(self, path: PathLike) -> LoadedCandidate:
        with self._count_lock:
            self.reads += 1
        time.sleep(self.delay)
        return super().read_candidate(path)


@pytest.fixture(autouse=True)
def _clear_registry() -> Iterator[None]:
    clear_secret_values()
    yield
    clear_secret_values()


def _resolver(environ: dict[str, str] | None = None) -> SecretResolver:
    return SecretResolver({SecretSource.ENV: EnvironmentLookup(environ or {})})


def _document() -> dict[str, Any]:
    return default_document(BackendKind.WSL2, now=FIXED_NOW)


def _write(path: Path, document: dict[str, Any]) -> Path:
    path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    return path


def _coordinator(environ: dict[str, str] | None = None) -> ReloadCoordinator:
    return ReloadCoordinator(ConfigurationManager(resolver=_resolver(environ)))


async def test_initial_reload_publishes_configuration(tmp_path: Path) -> None:
    target = _write(tmp_path / "backend.json", _document())
    coordinator = _coordinator()

    outcome = await coordinator.reload(target)

    assert outcome.status is ReloadStatus.APPLIED
    assert outcome.published
    assert coordinator.cache.get(target) is outcome.config


async def test_invalid_initial_file_is_rejected_and_nothing_is_published(
    tmp_path: Path,
) -> None:
    document = _document()
    document["redis"]["port"] = -1
    target = _write(tmp_path / "backend.json", document)
    coordinator = _coordinator()

    outcome = await coordinator.reload(target)

    assert outcome.status is ReloadStatus.REJECTED
    assert outcome.config is None
    assert target not in coordinator.cache


async def test_rereading_identical_file_is_unchanged(tmp_path: Path) -> None:
    target = _write(tmp_path / "backend.json", _document())
    coordinator = _coordinator()
    await coordinator.reload(target)

    outcome = await coordinator.reload(target)

    assert outcome.status is ReloadStatus.UNCHANGED
    assert outcome.classification is ChangeClassification.NO_CHANGE


async def test_hot_change_is_published(tmp_path: Path) -> None:
    target = _write(tmp_path / "backend.json", _document())
    coordinator = _coordinator()
    await coordinator.reload(target)

    document = _document()
    document["monitoring"]["logLevel"] = "Warning"
    _write(target, document)
    outcome = await coordinator.notify_changed(target)

    assert outcome.status is ReloadStatus.APPLIED
    assert outcome.classification is ChangeClassification.HOT_APPLICABLE
    cached = coordinator.cache.get(target)
    assert cached is not None
    assert cached.monitoring.log_level == "Warning"


async def test_restart_change_is_deferred_until_acknowledged(tmp_path: Path) -> None:
    target = _write(tmp_path / "backend.json", _document())
    coordinator = _coordinator()
    initial = await coordinator.reload(target)

    document = _document()
    document["redis"]["port"] = 6380
    _write(target, document)
    outcome = await coordinator.reload(target)

    assert outcome.status is ReloadStatus.DEFERRED
    assert outcome.config is initial.config
    assert coordinator.cache.get(target) is initial.config
    pending = coordinator.pending_restart(target)
    assert pending is not None and pending.redis.port == 6380

    published = coordinator.acknowledge_restart(target)

    assert published is pending
    assert coordinator.cache.get(target) is pending
    assert coordinator.pending_restart(target) is None
    assert coordinator.acknowledge_restart(target) is None


async def test_hot_change_supersedes_pending_restart(tmp_path: Path) -> None:
    target = _write(tmp_path / "backend.json", _document())
    coordinator = _coordinator()
    await coordinator.reload(target)

    document = _document()
    document["redis"]["port"] = 6380
    _write(target, document)
    await coordinator.reload(target)

    document = _document()
    document["monitoring"]["logLevel"] = "Warning"
    _write(target, document)
    outcome = await coordinator.reload(target)

    assert outcome.status is ReloadStatus.APPLIED
    assert coordinator.pending_restart(target) is None


async def test_invalid_change_is_rejected_and_previous_config_kept(tmp_path: Path) -> None:
    target = _write(tmp_path / "backend.json", _document())
    coordinator = _coordinator()
    initial = await coordinator.reload(target)

    document = _document()
    document["redis"]["port"] = 70000
    _write(target, document)
    outcome = await coordinator.reload(target)

    assert outcome.status is ReloadStatus.REJECTED
    assert outcome.config is initial.config
    assert coordinator.cache.get(target) is initial.config
    assert [issue.path for issue in outcome.issues if issue.severity is Severity.ERROR] == [
        "redis.port"
    ]


async def test_unresolved_required_secret_is_rejected_as_critical(tmp_path: Path) -> None:
    target = _write(tmp_path / "backend.json", _document())
    coordinator = _coordinator()
    initial = await coordinator.reload(target)

    document = _document()
    document["redis"]["requirePassword"] = True
    document["redis"]["password"] = "${ENV:REDIS_PW}"
    _write(target, document)
    outcome = await coordinator.reload(target)

    assert outcome.status is ReloadStatus.REJECTED
    assert outcome.config is initial.config
    (issue,) = outcome.issues
    assert issue.severity is Severity.CRITICAL
    assert issue.path == "redis.password"
    assert "ENV:REDIS_PW" in issue.message


async def test_malformed_file_fails_without_touching_cache(tmp_path: Path) -> None:
    target = _write(tmp_path / "backend.json", _document())
    coordinator = _coordinator()
    initial = await coordinator.reload(target)

    target.write_text("{ not json", encoding="utf-8")
    outcome = await coordinator.reload(target)

    assert outcome.status is ReloadStatus.FAILED
    assert outcome.classification is None
    assert outcome.error is not None and "invalid JSON" in outcome.error
    assert coordinator.cache.get(target) is initial.config


async def test_missing_file_fails(tmp_path: Path) -> None:
    outcome = await _coordinator().reload(tmp_path / "absent.json")

    assert outcome.status is ReloadStatus.FAILED
    assert outcome.config is None


async def test_timeout_leaves_cache_unchanged(tmp_path: Path) -> None:
    target = _write(tmp_path / "backend.json", _document())
    manager = _SlowManager(0.3, resolver=_resolver())
    coordinator = ReloadCoordinator(manager)

    outcome = await coordinator.reload(target, timeout_seconds=0.05)

    assert outcome.status is ReloadStatus.FAILED
    assert outcome.error is not None and "timed out" in outcome.error
    assert target not in coordinator.cache


async def test_concurrent_reloads_share_one_read(tmp_path: Path) -> None:
    target = _write(tmp_path / "backend.json", _document())
    manager = _SlowManager(0.1, resolver=_resolver())
    coordinator = ReloadCoordinator(manager)

    outcomes = await asyncio.gather(*(coordinator.reload(target) for _ in range(5)))

    assert manager.reads == 1
    assert all(outcome is outcomes[0] for outcome in outcomes)
    assert not coordinator.is_reloading(target)


async def test_reloads_of_different_paths_do_not_coalesce(tmp_path: Path) -> None:
    first = _write(tmp_path / "a.json", _document())
    second = _write(tmp_path / "b.json", _document())
    manager = _SlowManager(0.05, resolver=_resolver())
    coordinator = ReloadCoordinator(manager)

    await asyncio.gather(coordinator.reload(first), coordinator.reload(second))

    assert manager.reads == 2
    assert first in coordinator.cache and second in coordinator.cache
