"""
redis-service-config — security redaction utilities

File: src/redis_service_config/security/redaction.py
Last updated: 2026-10-18

Purpose
- Keep resolved secret values out of logs, rendered documents, diffs and error messages.

What should be included in this file
- A registry of resolved secret values populated by the secret resolver.
- Key-based redaction for structured payloads (``password``, ``*_token`` ...).
- Value-based redaction for free text using the registry and assignment patterns.
- A structlog processor applying both to every event.

Functional requirements
- Indirection tokens (``${ENV:NAME}``) stay visible; they name a source, not a value.
- Redaction never raises; unknown value types pass through unchanged.

Non-functional requirements
- Deterministic output for identical inputs.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Mapping, MutableMapping
from typing import Any, Final

REDACTED_VALUE: Final[str] = "***REDACTED***"

_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{(ENV|CRED):([^}]+)\}", re.IGNORECASE)

DEFAULT_SENSITIVE_KEY_DENYLIST: Final[frozenset[str]] = frozenset(
    {
        "access_token",
        "api_key",
        "apikey",
        "auth_token",
        "authorization",
        "client_secret",
        "credential",
        "credentials",
        "password",
        "passwd",
        "private_key",
        "secret",
        "token",
    }
)

_SENSITIVE_KEY_SUFFIXES: Final[tuple[str, ...]] = (
    "_api_key",
    "_access_token",
    "_client_secret",
    "_password",
    "_passwd",
    "_secret",
    "_token",
)

_SENSITIVE_ASSIGNMENT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b(password|passwd|requirepass|secret|token)\b(\s*[:=]\s*)([^\s,;]+)"
)

_CAMEL_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


class _SecretRegistry:
    """Thread-safe set of resolved secret values known to this process."""

    __slots__ = ("_lock", "_values")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: frozenset[str] = frozenset()

    def add(self, values: Iterable[str]) -> None:
        cleaned = {value for value in values if value}
        if not cleaned:
            return
        with self._lock:
            self._values = self._values | cleaned

    def clear(self) -> None:
        with self._lock:
            self._values = frozenset()

    def snapshot(self) -> frozenset[str]:
        return self._values


_REGISTRY = _SecretRegistry()


def register_secret_values(values: Iterable[str]) -> None:
    """Remember resolved secret values so later redaction can mask them anywhere."""

    _REGISTRY.add(values)


def clear_secret_values() -> None:
    _REGISTRY.clear()


def is_sensitive_key(key: str) -> bool:
    """Return ``True`` for keys whose values must never be rendered (``password``, ``apiKey``)."""

    normalized = _normalize_key(key)
    if not normalized:
        return False
    if normalized in DEFAULT_SENSITIVE_KEY_DENYLIST:
        return True
    return normalized.endswith(_SENSITIVE_KEY_SUFFIXES)


def redact_text(text: str, *, secrets: Iterable[str] | None = None) -> str:
    """Mask registered secret values and ``password=...`` style assignments in ``text``."""

    known = set(_REGISTRY.snapshot())
    if secrets is not None:
        known.update(value for value in secrets if value)

    redacted = text
    # Longest first so a secret containing another secret is fully masked.
    for value in sorted(known, key=len, reverse=True):
        if value in redacted:
            redacted = redacted.replace(value, REDACTED_VALUE)

    def _mask_assignment(match: re.Match[str]) -> str:
        candidate = match.group(3)
        if candidate == REDACTED_VALUE or _TOKEN_PATTERN.fullmatch(candidate):
            return match.group(0)
        return f"{match.group(1)}{match.group(2)}{REDACTED_VALUE}"

    return _SENSITIVE_ASSIGNMENT_PATTERN.sub(_mask_assignment, redacted)


def redact_structure(value: object, *, secrets: Iterable[str] | None = None) -> Any:
    """Return a redacted deep copy of a JSON-like structure."""

    known = tuple(secrets) if secrets is not None else None
    return _redact(value, key=None, secrets=known)


def redact_event(
    logger: object, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor: redact every field of ``event_dict`` in place."""

    for key in list(event_dict):
        event_dict[key] = _redact(event_dict[key], key=key, secrets=None)
    return event_dict


def _redact(value: object, *, key: str | None, secrets: tuple[str, ...] | None) -> Any:
    if key is not None and is_sensitive_key(key):
        if isinstance(value, str) and (not value or _TOKEN_PATTERN.fullmatch(value.strip())):
            return value
        if isinstance(value, (Mapping, list, tuple)):
            return _redact(value, key=None, secrets=secrets)
        if isinstance(value, bool) or value is None:
            return value
        return REDACTED_VALUE
    if isinstance(value, str):
        return redact_text(value, secrets=secrets)
    if isinstance(value, Mapping):
        return {
            str(item_key): _redact(item, key=str(item_key), secrets=secrets)
            for item_key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact(item, key=None, secrets=secrets) for item in value]
    return value


def _normalize_key(key: str) -> str:
    with_boundaries = _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", key.strip())
    return _NON_ALNUM.sub("_", with_boundaries.lower()).strip("_")


__all__ = [
    "DEFAULT_SENSITIVE_KEY_DENYLIST",
    "REDACTED_VALUE",
    "clear_secret_values",
    "is_sensitive_key",
    "redact_event",
    "redact_structure",
    "redact_text",
    "register_secret_values",
]
