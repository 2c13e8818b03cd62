"""Structured logging setup tests."""

from __future__ import annotations

import io
import json
import logging
import logging.handlers
from dataclasses import replace
from typing import TYPE_CHECKING

import pytest
import structlog

from redis_service_config.config.factory import create_default
from redis_service_config.config.model import BackendKind, MonitoringSettings
from redis_service_config.observability.logging import (
    ROOT_LOGGER_NAME,
    configure_logging,
    get_active_logging_handle,
    parse_level,
    shutdown_logging,
)
from redis_service_config.security.redaction import REDACTED_VALUE, clear_secret_values

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    clear_secret_values()
    yield
    shutdown_logging()
    clear_secret_values()


def _monitoring(**changes: object) -> MonitoringSettings:
    base = create_default(BackendKind.WSL2).monitoring
    settings: dict[str, object] = {"enable_file_logging": False, **changes}
    return replace(base, **settings)


def _lines(stream: io.StringIO) -> list[dict[str, object]]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def test_events_are_rendered_as_json_lines_with_secrets_redacted() -> None:
    stream = io.StringIO()
    configure_logging(_monitoring(log_level="Info"), stream=stream)

    structlog.get_logger(f"{ROOT_LOGGER_NAME}.tests").info(
        "config_loaded", path="backend.json", password="Xy7!secret"
    )

    (line,) = _lines(stream)
    assert line["event"] == "config_loaded"
    assert line["level"] == "info"
    assert line["logger"] == f"{ROOT_LOGGER_NAME}.tests"
    assert line["password"] == REDACTED_VALUE
    assert line["path"] == "backend.json"
    assert "timestamp" in line


def test_level_filters_lower_severity_events() -> None:
    stream = io.StringIO()
    configure_logging(_monitoring(log_level="Warning"), stream=stream)
    logger = structlog.get_logger(f"{ROOT_LOGGER_NAME}.tests")

    logger.info("ignored")
    logger.warning("kept")

    assert [line["event"] for line in _lines(stream)] == ["kept"]


def test_file_sink_writes_to_configured_path(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "redis-service.log"
    monitoring = _monitoring(
        enable_file_logging=True,
        log_file_path=str(log_path),
        max_log_size_mb=1,
        max_log_files=2,
    )
    handle = configure_logging(monitoring, stream=io.StringIO())

    structlog.get_logger(f"{ROOT_LOGGER_NAME}.tests").error("service_failed", code=3)
    handle.flush()

    assert handle.log_path == log_path
    rotating_type = logging.handlers.RotatingFileHandler
    rotating = [handler for handler in handle.handlers if isinstance(handler, rotating_type)]
    assert len(rotating) == 1
    assert rotating[0].maxBytes == 1024 * 1024
    assert rotating[0].backupCount == 2
    record = json.loads(log_path.read_text(encoding="utf-8").strip())
    assert record["event"] == "service_failed"
    assert record["code"] == 3


def test_reconfiguring_replaces_previous_handlers() -> None:
    first_stream = io.StringIO()
    second_stream = io.StringIO()
    first = configure_logging(_monitoring(), stream=first_stream)
    second = configure_logging(_monitoring(log_level="Debug"), stream=second_stream)

    structlog.get_logger(f"{ROOT_LOGGER_NAME}.tests").debug("after_reload")

    assert first.closed
    assert get_active_logging_handle() is second
    attached = logging.getLogger(ROOT_LOGGER_NAME).handlers
    assert not set(first.handlers) & set(attached)
    assert set(second.handlers) <= set(attached)
    assert first_stream.getvalue() == ""
    assert [line["event"] for line in _lines(second_stream)] == ["after_reload"]


def test_shutdown_closes_active_handle() -> None:
    handle = configure_logging(_monitoring(), stream=io.StringIO())

    shutdown_logging()

    assert handle.closed
    assert get_active_logging_handle() is None
    assert not set(handle.handlers) & set(logging.getLogger(ROOT_LOGGER_NAME).handlers)


@pytest.mark.parametrize(
    ("name", "level"),
    [("Debug", logging.DEBUG), (" info ", logging.INFO), ("WARNING", logging.WARNING)],
)
def test_parse_level_accepts_configuration_names(name: str, level: int) -> None:
    assert parse_level(name) == level


def test_parse_level_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="unknown log level 'Verbose'"):
        parse_level("Verbose")
