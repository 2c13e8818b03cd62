"""Configuration file watcher tests."""

from __future__ import annotations

import asyncio
import threading
import time
from pathlib import Path
from typing import Any

import pytest

from redis_service_config.reload.watcher import (
    ConfigChangeType,
    ConfigFileEvent,
    ConfigFileWatcher,
    schedule_reload,
)


class _RecordingLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def _record(self, level: str, event: str, **fields: Any) -> None:
        self.events.append((level, event, fields))

    def debug(self, event: str, **fields: Any) -> None:
        self._record("debug", event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self._record("info", event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._record("error", event, **fields)


class _Collector:
    def __init__(self) -> None:
        self.events: list[ConfigFileEvent] = []
        self.fired = threading.Event()

    def __call__(self, event: ConfigFileEvent) -> None:
        self.events.append(event)
        self.fired.set()


@pytest.fixture
def collector() -> _Collector:
    return _Collector()


def test_burst_of_changes_yields_one_notification(tmp_path: Path, collector: _Collector) -> None:
    watcher = ConfigFileWatcher(tmp_path / "backend.json", collector, debounce_seconds=0.05)

    watcher.record(ConfigChangeType.CREATED)
    watcher.record(ConfigChangeType.MODIFIED)
    watcher.record(ConfigChangeType.MODIFIED)

    assert collector.fired.wait(2.0)
    watcher.stop()
    (event,) = collector.events
    assert event.change_type is ConfigChangeType.MODIFIED
    assert event.burst_size == 3
    assert event.path == (tmp_path / "backend.json").resolve()


def test_stop_cancels_pending_notification(tmp_path: Path, collector: _Collector) -> None:
    watcher = ConfigFileWatcher(tmp_path / "backend.json", collector, debounce_seconds=0.2)

    watcher.record(ConfigChangeType.MODIFIED)
    watcher.stop()

    assert not collector.fired.wait(0.4)


def test_callback_failure_is_logged_not_raised(tmp_path: Path) -> None:
    logger = _RecordingLogger()
    done = threading.Event()

    def _explode(event: ConfigFileEvent) -> None:
        done.set()
        raise RuntimeError("boom")

    watcher = ConfigFileWatcher(
        tmp_path / "backend.json", _explode, debounce_seconds=0.01, logger=logger
    )
    watcher.record(ConfigChangeType.MODIFIED)

    assert done.wait(2.0)
    for _ in range(100):
        if any(event == "config_watch_callback_failed" for _, event, _ in logger.events):
            break
        time.sleep(0.01)
    failures = [fields for level, event, fields in logger.events if level == "error"]
    assert failures == [{"path": str(watcher.path), "error": "boom"}]


def test_matches_normalizes_paths(tmp_path: Path, collector: _Collector) -> None:
    (tmp_path / "conf").mkdir()
    watcher = ConfigFileWatcher(tmp_path / "backend.json", collector)

    assert watcher.matches(tmp_path / "conf" / ".." / "backend.json")
    assert not watcher.matches(tmp_path / "other.json")


def test_negative_debounce_is_rejected(tmp_path: Path, collector: _Collector) -> None:
    with pytest.raises(ValueError, match="debounce_seconds"):
        ConfigFileWatcher(tmp_path / "backend.json", collector, debounce_seconds=-1)


def test_start_requires_existing_directory(tmp_path: Path, collector: _Collector) -> None:
    watcher = ConfigFileWatcher(tmp_path / "missing" / "backend.json", collector)

    with pytest.raises(FileNotFoundError):
        watcher.start()
    assert not watcher.is_running


def test_observer_reports_file_writes(tmp_path: Path, collector: _Collector) -> None:
    target = tmp_path / "backend.json"
    target.write_text("{}", encoding="utf-8")

    with ConfigFileWatcher(target, collector, debounce_seconds=0.05) as watcher:
        assert watcher.is_running
        (tmp_path / "unrelated.txt").write_text("x", encoding="utf-8")
        target.write_text('{"a": 1}', encoding="utf-8")
        assert collector.fired.wait(5.0)

    assert not watcher.is_running
    assert all(event.path == target.resolve() for event in collector.events)


async def test_schedule_reload_runs_notification_on_loop(tmp_path: Path) -> None:
    seen: list[Path] = []

    async def _notify(path: Path) -> str:
        seen.append(path)
        return "reloaded"

    callback = schedule_reload(asyncio.get_running_loop(), _notify)
    event = ConfigFileEvent(path=tmp_path / "backend.json", change_type=ConfigChangeType.MOVED)

    future = callback(event)

    assert await asyncio.wrap_future(future) == "reloaded"  # type: ignore[arg-type]
    assert seen == [tmp_path / "backend.json"]


async def test_schedule_reload_skips_deletions(tmp_path: Path) -> None:
    calls: list[Path] = []

    async def _notify(path: Path) -> None:
        calls.append(path)

    callback = schedule_reload(asyncio.get_running_loop(), _notify)
    event = ConfigFileEvent(path=tmp_path / "backend.json", change_type=ConfigChangeType.DELETED)

    assert callback(event) is None
    await asyncio.sleep(0)
    assert calls == []


async def test_schedule_reload_logs_failed_notification(tmp_path: Path) -> None:
    logger = _RecordingLogger()

    async def _notify(path: Path) -> None:
        raise RuntimeError("reload exploded")

    callback = schedule_reload(asyncio.get_running_loop(), _notify, logger=logger)
    event = ConfigFileEvent(path=tmp_path / "backend.json", change_type=ConfigChangeType.MODIFIED)

    future = callback(event)

    with pytest.raises(RuntimeError, match="reload exploded"):
        await asyncio.wrap_future(future)  # type: ignore[arg-type]
    assert logger.events == [
        (
            "error",
            "config_reload_dispatch_failed",
            {"path": str(tmp_path / "backend.json"), "error": "reload exploded"},
        )
    ]
