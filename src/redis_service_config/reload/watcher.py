"""
redis-service-config — configuration file watcher.

File: src/redis_service_config/reload/watcher.py
Last updated: 2026-10-18

Purpose
- Detect edits to one configuration file and hand a debounced notification to a callback,
  typically ``ReloadCoordinator.notify_changed`` scheduled onto an event loop.

What should be included in this file
- A ``watchdog`` event handler filtering events to the watched file.
- Trailing-edge debounce: a burst of events yields one notification after the window.
- ``start``/``stop`` lifecycle and context-manager support.
- ``schedule_reload`` helper bridging watchdog threads to an asyncio loop.

Functional requirements
- Editors that save via rename (write temp, move over target) are reported as ``moved``.
- Callback exceptions are logged and never stop the observer.

Non-functional requirements
- The callback runs on a timer thread, never on the observer thread.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any, Final

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from redis_service_config.utils.fs import PathLike

DEFAULT_DEBOUNCE_SECONDS: Final[float] = 0.5


class ConfigChangeType(StrEnum):
    MODIFIED = "modified"
    CREATED = "created"
    DELETED = "deleted"
    MOVED = "moved"


@dataclass(frozen=True, slots=True)
class ConfigFileEvent:
    path: Path
    change_type: ConfigChangeType
    burst_size: int = 1


ChangeCallback = Callable[[ConfigFileEvent], object]

_EVENT_TYPES: Final[dict[str, ConfigChangeType]] = {
    "modified": ConfigChangeType.MODIFIED,
    "created": ConfigChangeType.CREATED,
    "deleted": ConfigChangeType.DELETED,
    "moved": ConfigChangeType.MOVED,
}


class _ConfigFileHandler(FileSystemEventHandler):
    def __init__(self, watcher: ConfigFileWatcher) -> None:
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        change_type = _EVENT_TYPES.get(event.event_type)
        if change_type is None:
            return
        touched = [_as_path(event.src_path)]
        dest = getattr(event, "dest_path", "")
        if dest:
            touched.append(_as_path(dest))
        if any(self._watcher.matches(path) for path in touched):
            self._watcher.record(change_type)


class ConfigFileWatcher:
    """Watch a single configuration file and report debounced changes."""

    def __init__(
        self,
        path: PathLike,
        callback: ChangeCallback,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        logger: Any | None = None,
    ) -> None:
        if debounce_seconds < 0:
            raise ValueError("debounce_seconds must be >= 0")
        self._path = Path(path).expanduser().resolve(strict=False)
        self._callback = callback
        self._debounce = debounce_seconds
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._last_change: ConfigChangeType | None = None
        self._burst = 0
        self._observer: Any | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def matches(self, candidate: Path) -> bool:
        return candidate.resolve(strict=False) == self._path

    def start(self) -> None:
        if self._observer is not None:
            return
        directory = self._path.parent
        if not directory.is_dir():
            raise FileNotFoundError(f"configuration directory does not exist: {directory}")
        observer = Observer()
        observer.schedule(_ConfigFileHandler(self), str(directory), recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer
        self._logger.info("config_watch_started", path=str(self._path))

    def stop(self, timeout: float | None = 5.0) -> None:
        observer = self._observer
        self._observer = None
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._burst = 0
            self._last_change = None
        if observer is not None:
            observer.stop()
            observer.join(timeout)
            self._logger.info("config_watch_stopped", path=str(self._path))

    def __enter__(self) -> ConfigFileWatcher:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def record(self, change_type: ConfigChangeType) -> None:
        """Register one raw change; the callback fires once the burst has been quiet."""

        with self._lock:
            self._last_change = change_type
            self._burst += 1
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self._debounce, self._flush)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _flush(self) -> None:
        with self._lock:
            change_type = self._last_change
            burst = self._burst
            self._timer = None
            self._last_change = None
            self._burst = 0
        if change_type is None:
            return
        event = ConfigFileEvent(path=self._path, change_type=change_type, burst_size=burst)
        self._logger.debug(
            "config_file_changed",
            path=str(self._path),
            change_type=str(change_type),
            burst=burst,
        )
        try:
            self._callback(event)
        except Exception as exc:  # noqa: BLE001
            self._logger.error(
                "config_watch_callback_failed",
                path=str(self._path),
                error=str(exc),
            )


def schedule_reload(
    loop: asyncio.AbstractEventLoop,
    notify: Callable[[Path], Any],
    *,
    logger: Any | None = None,
) -> ChangeCallback:
    """Build a watcher callback that runs ``notify(path)`` on ``loop``.

    Deletions are skipped; the last good configuration keeps being served. A failure
    raised by ``notify`` is logged as ``config_reload_dispatch_failed``.
    """

    log = logger if logger is not None else structlog.get_logger(__name__)

    def _callback(event: ConfigFileEvent) -> object:
        if event.change_type is ConfigChangeType.DELETED:
            return None
        future = asyncio.run_coroutine_threadsafe(notify(event.path), loop)

        def _report(done: concurrent.futures.Future[Any]) -> None:
            if done.cancelled():
                return
            error = done.exception()
            if error is not None:
                log.error(
                    "config_reload_dispatch_failed",
                    path=str(event.path),
                    error=str(error),
                )

        future.add_done_callback(_report)
        return future

    return _callback


def _as_path(raw: str | bytes) -> Path:
    if isinstance(raw, bytes):
        return Path(raw.decode())
    return Path(raw)


__all__ = [
    "ChangeCallback",
    "ConfigChangeType",
    "ConfigFileEvent",
    "ConfigFileWatcher",
    "DEFAULT_DEBOUNCE_SECONDS",
    "schedule_reload",
]
