"""
redis-service-config — secret indirection resolver.

File: src/redis_service_config/config/secrets.py
Last updated: 2026-10-18

Purpose
- Replace ``${ENV:NAME}`` / ``${CRED:NAME}`` tokens in configuration documents with values
  from the environment or the OS credential store.

What should be included in this file
- ``SecretSource`` and the ``get(name) -> value | None`` lookup protocol.
- Environment and keyring-backed credential-store lookups.
- ``SecretResolver`` producing a resolved document plus per-path bindings to the original
  tokens, and ``restore_tokens`` for persistence.

Functional requirements
- An absent value raises ``SecretUnavailable(source, identifier)``; fatal only for required
  fields (the Redis password when authentication is required), empty otherwise.
- Persisted documents carry the original token, never the resolved value.

Non-functional requirements
- Resolved values never appear in log events or exception messages.
"""

from __future__ import annotations

import copy
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final, Protocol

import keyring
import keyring.errors
import structlog

from redis_service_config.config.document import decode_configuration, encode_configuration
from redis_service_config.config.model import PathKey, SecretBinding, ServiceConfiguration
from redis_service_config.constants import CREDENTIAL_SERVICE_NAME
from redis_service_config.errors import SecretUnavailable
from redis_service_config.security.redaction import register_secret_values
from redis_service_config.utils.hashing import sha256_text

TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{(ENV|CRED):([^}]+)\}", re.IGNORECASE)
CREDENTIAL_ENV_PREFIX: Final[str] = "CRED_"

_REQUIRED_PASSWORD_PATH: Final[tuple[PathKey, ...]] = ("redis", "password")


class SecretSource(StrEnum):
    ENV = "ENV"
    CRED = "CRED"


class SecretLookup(Protocol):
    def get(self, name: str) -> str | None: ...


class _PasswordStore(Protocol):
    def get_password(self, service_name: str, username: str) -> str | None: ...


class EnvironmentLookup:
    """Environment-variable lookup; empty values count as absent."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def get(self, name: str) -> str | None:
        value = self._environ.get(name)
        return value or None


class CredentialStoreLookup:
    """OS credential-store lookup through ``keyring``.

    When the store has no entry, or no keyring backend is installed, the value is read from
    the ``CRED_<name>`` environment variable instead.
    """

    def __init__(
        self,
        service_name: str = CREDENTIAL_SERVICE_NAME,
        *,
        store: _PasswordStore | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._service_name = service_name
        self._store = store
        self._fallback = EnvironmentLookup(environ)

    def get(self, name: str) -> str | None:
        try:
            if self._store is not None:
                value = self._store.get_password(self._service_name, name)
            else:
                value = keyring.get_password(self._service_name, name)
        except keyring.errors.NoKeyringError:
            value = None
        if value:
            return value
        return self._fallback.get(f"{CREDENTIAL_ENV_PREFIX}{name}")


@dataclass(frozen=True, slots=True)
class SecretResolution:
    """Resolved document plus the bindings needed to re-emit the original tokens."""

    document: dict[str, Any]
    bindings: tuple[SecretBinding, ...]
    failures: tuple[SecretUnavailable, ...]


class SecretResolver:
    """Resolve indirection tokens against named secret sources."""

    def __init__(
        self,
        lookups: Mapping[SecretSource, SecretLookup] | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        logger: Any | None = None,
    ) -> None:
        if lookups is None:
            lookups = {
                SecretSource.ENV: EnvironmentLookup(environ),
                SecretSource.CRED: CredentialStoreLookup(environ=environ),
            }
        self._lookups = dict(lookups)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def resolve_text(self, text: str, *, path: str | None = None) -> str:
        """Substitute every token in ``text``; raise ``SecretUnavailable`` on the first miss."""

        def _substitute(match: re.Match[str]) -> str:
            source = SecretSource(match.group(1).upper())
            identifier = match.group(2).strip()
            lookup = self._lookups.get(source)
            value = lookup.get(identifier) if lookup is not None else None
            if not value:
                raise SecretUnavailable(str(source), identifier, path=path)
            return value

        return TOKEN_PATTERN.sub(_substitute, text)

    def resolve_document(self, document: Mapping[str, object]) -> SecretResolution:
        """Resolve every string value in ``document``.

        Raises ``SecretUnavailable`` when a required field cannot be resolved; other failures
        resolve to an empty string and are reported in ``failures``.
        """

        resolved = copy.deepcopy(dict(document))
        bindings: list[SecretBinding] = []
        failures: list[SecretUnavailable] = []
        required = _required_paths(resolved)

        for path, raw in _iter_strings(resolved):
            if not contains_token(raw):
                continue
            dotted = _dotted(path)
            try:
                value = self.resolve_text(raw, path=dotted)
            except SecretUnavailable as exc:
                if path in required:
                    self._logger.error(
                        "secret_required_unavailable",
                        path=dotted,
                        source=exc.source,
                        identifier=exc.identifier,
                    )
                    raise
                self._logger.warning(
                    "secret_unavailable",
                    path=dotted,
                    source=exc.source,
                    identifier=exc.identifier,
                )
                failures.append(exc)
                value = ""
            _set_at(resolved, path, value)
            bindings.append(SecretBinding(path=path, token=raw, value_digest=sha256_text(value)))
            register_secret_values([value])

        password = _get_at(resolved, _REQUIRED_PASSWORD_PATH)
        if isinstance(password, str):
            register_secret_values([password])
            from_token = any(binding.path == _REQUIRED_PASSWORD_PATH for binding in bindings)
            if not from_token and looks_like_plaintext_secret(password):
                self._logger.warning(
                    "plaintext_secret_detected",
                    path=_dotted(_REQUIRED_PASSWORD_PATH),
                    hint="use ${ENV:NAME} or ${CRED:NAME}",
                )

        if bindings:
            self._logger.debug("secrets_resolved", paths=[binding.dotted for binding in bindings])
        return SecretResolution(
            document=resolved, bindings=tuple(bindings), failures=tuple(failures)
        )

    def resolve_configuration(self, config: ServiceConfiguration) -> ServiceConfiguration:
        """Resolve tokens held in a programmatically built configuration."""

        document = restore_tokens(encode_configuration(config), config.secret_bindings)
        resolution = self.resolve_document(document)
        return decode_configuration(resolution.document, secret_bindings=resolution.bindings)


def contains_token(text: str) -> bool:
    return TOKEN_PATTERN.search(text) is not None


def looks_like_plaintext_secret(value: str) -> bool:
    """Heuristic: 8+ characters with letters and digits and no indirection token."""

    if not value or contains_token(value):
        return False
    has_letter = any(char.isalpha() for char in value)
    has_digit = any(char.isdigit() for char in value)
    return len(value) >= 8 and has_letter and has_digit


def restore_tokens(
    document: Mapping[str, object], bindings: tuple[SecretBinding, ...]
) -> dict[str, Any]:
    """Return a copy of ``document`` with each still-resolved field replaced by its token.

    A field whose current value no longer matches the binding digest was changed after load
    and is left as is.
    """

    restored = copy.deepcopy(dict(document))
    for binding in bindings:
        current = _get_at(restored, binding.path)
        if not isinstance(current, str):
            continue
        if sha256_text(current) != binding.value_digest:
            continue
        _set_at(restored, binding.path, binding.token)
    return restored


def _required_paths(document: Mapping[str, object]) -> frozenset[tuple[PathKey, ...]]:
    redis = document.get("redis")
    if isinstance(redis, Mapping) and redis.get("requirePassword") is True:
        return frozenset({_REQUIRED_PASSWORD_PATH})
    return frozenset()


def _iter_strings(
    value: object, prefix: tuple[PathKey, ...] = ()
) -> list[tuple[tuple[PathKey, ...], str]]:
    found: list[tuple[tuple[PathKey, ...], str]] = []
    if isinstance(value, Mapping):
        for key in sorted(value):
            found.extend(_iter_strings(value[key], (*prefix, key)))
    elif isinstance(value, list):
        for index, item in enumerate(value):
            found.extend(_iter_strings(item, (*prefix, index)))
    elif isinstance(value, str):
        found.append((prefix, value))
    return found


def _get_at(document: object, path: tuple[PathKey, ...]) -> object | None:
    cursor: object = document
    for part in path:
        if isinstance(part, int):
            if not isinstance(cursor, list) or part >= len(cursor):
                return None
            cursor = cursor[part]
        else:
            if not isinstance(cursor, Mapping) or part not in cursor:
                return None
            cursor = cursor[part]
    return cursor


def _set_at(document: object, path: tuple[PathKey, ...], value: str) -> None:
    parent = _get_at(document, path[:-1])
    leaf = path[-1]
    if isinstance(leaf, int) and isinstance(parent, list) and leaf < len(parent):
        parent[leaf] = value
    elif isinstance(leaf, str) and isinstance(parent, dict):
        parent[leaf] = value


def _dotted(path: tuple[PathKey, ...]) -> str:
    return SecretBinding(path=path, token="", value_digest="").dotted


__all__ = [
    "CREDENTIAL_ENV_PREFIX",
    "CredentialStoreLookup",
    "EnvironmentLookup",
    "SecretLookup",
    "SecretResolution",
    "SecretResolver",
    "SecretSource",
    "TOKEN_PATTERN",
    "contains_token",
    "looks_like_plaintext_secret",
    "restore_tokens",
]
