"""Redaction of resolved secrets in logs, rendered documents and diffs."""

from redis_service_config.security.redaction import (
    DEFAULT_SENSITIVE_KEY_DENYLIST,
    REDACTED_VALUE,
    clear_secret_values,
    is_sensitive_key,
    redact_event,
    redact_structure,
    redact_text,
    register_secret_values,
)

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
