"""Exception taxonomy for loading, validating, saving and resolving configurations."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from redis_service_config.validation.result import ValidationResult


class ConfigError(Exception):
    """Base class for configuration subsystem failures."""


class ConfigLoadError(ConfigError, ValueError):
    """Raised when a document cannot be read, parsed, migrated, or decoded."""

    def __init__(self, message: str, *, issues: Sequence[str] = ()) -> None:
        self.issues = tuple(issues)
        if self.issues:
            rendered = "\n".join(f"- {item}" for item in self.issues)
            message = f"{message}:\n{rendered}"
        super().__init__(message)


class ConfigValidationError(ConfigError, ValueError):
    """Raised when a configuration fails validation; carries the full result."""

    def __init__(self, result: ValidationResult, *, context: str = "invalid configuration") -> None:
        self.result = result
        self.issues = result.issues
        super().__init__(f"{context}:\n{result.render()}")


class ConfigSaveError(ConfigError):
    """Raised when a configuration is refused for saving or cannot be written."""

    def __init__(self, message: str, *, result: ValidationResult | None = None) -> None:
        self.result = result
        if result is not None:
            message = f"{message}:\n{result.render()}"
        super().__init__(message)


class SecretUnavailable(ConfigError, LookupError):
    """Raised when a secret indirection token names an absent source or identifier."""

    def __init__(self, source: str, identifier: str, *, path: str | None = None) -> None:
        self.source = source
        self.identifier = identifier
        self.path = path
        location = f" (at {path})" if path else ""
        super().__init__(f"secret {source}:{identifier} is unavailable{location}")


__all__ = [
    "ConfigError",
    "ConfigLoadError",
    "ConfigSaveError",
    "ConfigValidationError",
    "SecretUnavailable",
]
