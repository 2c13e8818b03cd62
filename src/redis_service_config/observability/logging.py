"""
redis-service-config — structured logging setup.

File: src/redis_service_config/observability/logging.py
Last updated: 2026-10-18

Purpose
- Configure structlog + stdlib logging from the ``monitoring`` section of a configuration.

What should be included in this file
- JSON-lines rendering with UTC timestamps, logger name and level.
- Redaction of sensitive keys and resolved secret values on every event.
- A size-bounded rotating file sink when file logging is enabled.
- A handle that can flush and close the sinks; reconfiguring replaces the previous handle.

Functional requirements
- ``maxLogSizeMB`` / ``maxLogFiles`` bound the file sink.
- The monitoring log level (Debug/Info/Warning/Error) filters every sink.

Non-functional requirements
- Safe to call again after a hot reload; handlers are never duplicated.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final, TextIO

import structlog

from redis_service_config.security.redaction import redact_event

if TYPE_CHECKING:
    from redis_service_config.config.model import MonitoringSettings

ROOT_LOGGER_NAME: Final[str] = "redis_service_config"

_BYTES_PER_MB: Final[int] = 1024 * 1024

_LEVELS: Final[dict[str, int]] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_ACTIVE_HANDLE_LOCK = threading.Lock()
_ACTIVE_HANDLE: LoggingHandle | None = None


@dataclass(slots=True)
class LoggingHandle:
    """Sinks installed by ``configure_logging``."""

    logger: logging.Logger
    handlers: tuple[logging.Handler, ...]
    level: int
    log_path: Path | None = None
    closed: bool = False

    def flush(self) -> None:
        for handler in self.handlers:
            handler.flush()

    def close(self) -> None:
        if self.closed:
            return
        for handler in self.handlers:
            self.logger.removeHandler(handler)
            handler.flush()
            handler.close()
        self.closed = True


def parse_level(name: str) -> int:
    try:
        return _LEVELS[name.strip().lower()]
    except KeyError as exc:
        expected = ", ".join(sorted(_LEVELS))
        raise ValueError(f"unknown log level {name!r}; expected one of: {expected}") from exc


def configure_logging(
    monitoring: MonitoringSettings,
    *,
    stream: TextIO | None = None,
    logger_name: str = ROOT_LOGGER_NAME,
) -> LoggingHandle:
    """Install JSON-lines sinks for ``monitoring`` and route structlog through them."""

    global _ACTIVE_HANDLE

    level = parse_level(monitoring.log_level)
    formatter = logging.Formatter("%(message)s")

    handlers: list[logging.Handler] = []
    stream_handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handlers.append(stream_handler)

    log_path: Path | None = None
    if monitoring.enable_file_logging:
        log_path = Path(monitoring.log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=max(1, monitoring.max_log_size_mb) * _BYTES_PER_MB,
                backupCount=max(1, monitoring.max_log_files),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logger = logging.getLogger(logger_name)
    with _ACTIVE_HANDLE_LOCK:
        if _ACTIVE_HANDLE is not None:
            _ACTIVE_HANDLE.close()
        logger.setLevel(level)
        logger.propagate = False
        for handler in handlers:
            logger.addHandler(handler)
        handle = LoggingHandle(
            logger=logger,
            handlers=tuple(handlers),
            level=level,
            log_path=log_path,
        )
        _ACTIVE_HANDLE = handle

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            redact_event,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    return handle


def shutdown_logging() -> None:
    """Close the active sinks and restore structlog defaults."""

    global _ACTIVE_HANDLE

    with _ACTIVE_HANDLE_LOCK:
        if _ACTIVE_HANDLE is not None:
            _ACTIVE_HANDLE.close()
            _ACTIVE_HANDLE = None
    structlog.reset_defaults()


def get_active_logging_handle() -> LoggingHandle | None:
    with _ACTIVE_HANDLE_LOCK:
        return _ACTIVE_HANDLE


__all__ = [
    "LoggingHandle",
    "ROOT_LOGGER_NAME",
    "configure_logging",
    "get_active_logging_handle",
    "parse_level",
    "shutdown_logging",
]
