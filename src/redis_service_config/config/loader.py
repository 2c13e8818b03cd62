"""
redis-service-config — configuration loader.

File: src/redis_service_config/config/loader.py
Last updated: 2026-10-18

Purpose
- Load, save and reload configuration documents on disk and publish them to the cache.

What should be included in this file
- ``ConfigurationManager`` implementing load/save/reload/load_or_default/dump_redacted.
- JSON reading with every failure mapped to ``ConfigLoadError``.
- Token-preserving, atomic saves.

Functional requirements
- Load pipeline: read -> migrate -> fill defaults -> resolve secrets -> decode -> validate
  -> publish.
- An unchanged file (same content fingerprint) is served from the cache.
- Saved documents carry the original ``${ENV:..}``/``${CRED:..}`` tokens, never resolved
  secret values.

Non-functional requirements
- Saves never leave a partially written file behind.
- Log events name paths and issue counts only; values go through redaction.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from redis_service_config.config.document import encode_configuration
from redis_service_config.config.factory import create_default, decode_document
from redis_service_config.config.model import BackendKind, ServiceConfiguration
from redis_service_config.config.secrets import SecretResolver, restore_tokens
from redis_service_config.constants import DEFAULTS, ConfigDefaults
from redis_service_config.errors import ConfigLoadError, ConfigSaveError, ConfigValidationError
from redis_service_config.reload.cache import ConfigurationCache
from redis_service_config.security.redaction import redact_structure
from redis_service_config.utils.fs import (
    FileFingerprint,
    PathLike,
    atomic_write,
    fingerprint,
    read_text,
)
from redis_service_config.validation.orchestrator import ConfigurationValidator
from redis_service_config.validation.result import ValidationResult


@dataclass(frozen=True, slots=True)
class LoadedCandidate:
    """A decoded, not yet validated configuration read from disk."""

    path: Path
    config: ServiceConfiguration
    fingerprint: FileFingerprint


class ConfigurationManager:
    """Disk-facing entry point for configuration documents."""

    def __init__(
        self,
        *,
        validator: ConfigurationValidator | None = None,
        resolver: SecretResolver | None = None,
        cache: ConfigurationCache | None = None,
        defaults: ConfigDefaults = DEFAULTS,
        logger: Any | None = None,
    ) -> None:
        self._defaults = defaults
        self._validator = validator if validator is not None else ConfigurationValidator(defaults)
        self._resolver = resolver if resolver is not None else SecretResolver()
        self._cache = cache if cache is not None else ConfigurationCache()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def cache(self) -> ConfigurationCache:
        return self._cache

    @property
    def validator(self) -> ConfigurationValidator:
        return self._validator

    def load(self, path: PathLike) -> ServiceConfiguration:
        """Return the validated configuration at ``path``, served from cache when unchanged."""

        target = Path(path)
        current = self._fingerprint(target)
        entry = self._cache.get_entry(target)
        if entry is not None and not self._cache.is_stale(target, current):
            self._logger.debug("config_cache_hit", path=str(target))
            return entry.config
        return self._load_and_publish(target)

    def reload(self, path: PathLike) -> ServiceConfiguration:
        """Re-read ``path`` bypassing the cache and republish it."""

        target = Path(path)
        self._logger.info("config_reload_requested", path=str(target))
        return self._load_and_publish(target)

    def load_or_default(
        self,
        path: PathLike,
        backend_kind: BackendKind | str = BackendKind.WSL2,
    ) -> ServiceConfiguration:
        target = Path(path)
        if not target.exists():
            self._logger.info(
                "config_default_used",
                path=str(target),
                backend_kind=str(backend_kind),
            )
            return create_default(backend_kind, self._defaults)
        return self.load(target)

    def read_candidate(self, path: PathLike) -> LoadedCandidate:
        """Read and decode ``path`` without validating or publishing it."""

        target = Path(path)
        current = self._fingerprint(target)
        document = self._read_document(target)
        config = decode_document(document, resolver=self._resolver, defaults=self._defaults)
        return LoadedCandidate(path=target, config=config, fingerprint=current)

    def validate(self, config: ServiceConfiguration) -> ValidationResult:
        return self._validator.validate(config)

    def publish(self, candidate: LoadedCandidate) -> None:
        self._cache.put(candidate.path, candidate.config, candidate.fingerprint)

    def save(self, config: ServiceConfiguration, path: PathLike) -> None:
        """Validate and atomically write ``config`` to ``path``, re-emitting secret tokens."""

        target = Path(path)
        result = self._validator.validate(config)
        if not result.success:
            self._logger.warning(
                "config_save_refused",
                path=str(target),
                errors=len(result.errors),
                criticals=len(result.criticals),
            )
            raise ConfigSaveError(
                f"refusing to save invalid configuration to {target}", result=result
            )

        document = restore_tokens(encode_configuration(config), config.secret_bindings)
        text = json.dumps(document, indent=2, ensure_ascii=False) + "\n"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            atomic_write(target, text)
            written = fingerprint(target)
        except OSError as exc:
            self._logger.error("config_save_failed", path=str(target), error=str(exc))
            raise ConfigSaveError(f"failed to write configuration to {target}: {exc}") from exc

        self._cache.put(target, config, written)
        self._logger.info(
            "config_saved",
            path=str(target),
            secret_tokens=len(config.secret_bindings),
        )

    def dump_redacted(self, config: ServiceConfiguration) -> str:
        """Deterministic JSON rendering of ``config`` that is safe to log."""

        document = restore_tokens(encode_configuration(config), config.secret_bindings)
        return json.dumps(
            redact_structure(document), sort_keys=True, separators=(",", ":"), ensure_ascii=False
        )

    def _load_and_publish(self, target: Path) -> ServiceConfiguration:
        candidate = self.read_candidate(target)
        result = self._validator.validate(candidate.config)
        if not result.success:
            self._logger.error(
                "config_invalid",
                path=str(target),
                errors=len(result.errors),
                criticals=len(result.criticals),
            )
            raise ConfigValidationError(result, context=f"invalid configuration in {target}")

        self.publish(candidate)
        self._logger.info(
            "config_loaded",
            path=str(target),
            backend=str(candidate.config.backend_kind),
            issues=len(result.issues),
            warnings=len(result.warnings),
        )
        return candidate.config

    def _fingerprint(self, target: Path) -> FileFingerprint:
        try:
            return fingerprint(target)
        except FileNotFoundError as exc:
            raise ConfigLoadError(f"configuration file not found: {target}") from exc
        except OSError as exc:
            raise ConfigLoadError(f"cannot read configuration file {target}: {exc}") from exc

    def _read_document(self, target: Path) -> dict[str, Any]:
        try:
            text = read_text(target)
        except FileNotFoundError as exc:
            raise ConfigLoadError(f"configuration file not found: {target}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigLoadError(f"cannot read configuration file {target}: {exc}") from exc

        if not text.strip():
            raise ConfigLoadError(f"configuration file is empty: {target}")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigLoadError(
                f"invalid JSON in {target}",
                issues=(f"line {exc.lineno} column {exc.colno}: {exc.msg}",),
            ) from exc
        if not isinstance(payload, dict):
            raise ConfigLoadError(
                f"invalid configuration document in {target}",
                issues=(f"<root>: expected object, got {type(payload).__name__}",),
            )
        return payload


__all__ = ["ConfigurationManager", "LoadedCandidate"]
