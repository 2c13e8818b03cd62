"""Structured logging configured from the monitoring section."""

from redis_service_config.observability.logging import (
    LoggingHandle,
    configure_logging,
    get_active_logging_handle,
    shutdown_logging,
)

__all__ = [
    "LoggingHandle",
    "configure_logging",
    "get_active_logging_handle",
    "shutdown_logging",
]
