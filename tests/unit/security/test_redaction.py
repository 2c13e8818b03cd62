"""
redis-service-config — unit tests for secret redaction

File: tests/unit/security/test_redaction.py
Last updated: 2026-10-18

Purpose
- Verify that secrets never survive redaction while indirection tokens and flags stay readable.

What this test file should cover
- Sensitive key detection across snake_case and camelCase spellings.
- Registry-based masking of resolved values in free text.
- ``password=...`` style assignments.
- Structured payloads and the structlog processor.

Functional requirements
- Offline only.

Non-functional requirements
- The global registry is cleared around every test.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from redis_service_config.security.redaction import (
    REDACTED_VALUE,
    clear_secret_values,
    is_sensitive_key,
    redact_event,
    redact_structure,
    redact_text,
    register_secret_values,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _clear_registry() -> Iterator[None]:
    clear_secret_values()
    yield
    clear_secret_values()


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("password", True),
        ("Password", True),
        ("requirePassword", True),
        ("redis_password", True),
        ("apiKey", True),
        ("CLIENT_SECRET", True),
        ("authToken", True),
        ("port", False),
        ("passwordPolicy", False),
        ("", False),
    ],
)
def test_sensitive_key_detection(key: str, expected: bool) -> None:
    assert is_sensitive_key(key) is expected


def test_registered_values_are_masked_in_text() -> None:
    register_secret_values(["Xy7!secret", ""])

    assert redact_text("AUTH Xy7!secret failed") == f"AUTH {REDACTED_VALUE} failed"


def test_longer_secrets_are_masked_before_their_substrings() -> None:
    register_secret_values(["abc123", "abc123-extended"])

    assert redact_text("value=abc123-extended") == f"value={REDACTED_VALUE}"


def test_ad_hoc_secrets_are_masked_without_registration() -> None:
    assert redact_text("hello s3cr3t-value", secrets=["s3cr3t-value"]) == f"hello {REDACTED_VALUE}"
    assert redact_text("hello s3cr3t-value") == "hello s3cr3t-value"


def test_assignments_are_masked_but_tokens_are_kept() -> None:
    assert redact_text("requirepass hunter22 password=hunter22") == (
        f"requirepass hunter22 password={REDACTED_VALUE}"
    )
    assert redact_text("token: abcdef") == f"token: {REDACTED_VALUE}"
    assert redact_text("password=${ENV:REDIS_PW}") == "password=${ENV:REDIS_PW}"


def test_structure_masks_sensitive_keys_and_keeps_flags() -> None:
    payload = {
        "redis": {
            "password": "plain-value-1",
            "requirePassword": True,
            "port": 6379,
        },
        "advanced": {"environmentVariables": {"API_KEY": "${CRED:api}", "MODE": "fast"}},
        "args": ["--requirepass", "password=plain-value-1"],
    }

    redacted = redact_structure(payload)

    assert redacted["redis"] == {
        "password": REDACTED_VALUE,
        "requirePassword": True,
        "port": 6379,
    }
    assert redacted["advanced"]["environmentVariables"] == {
        "API_KEY": "${CRED:api}",
        "MODE": "fast",
    }
    assert redacted["args"] == ["--requirepass", f"password={REDACTED_VALUE}"]
    assert payload["redis"]["password"] == "plain-value-1"


def test_empty_sensitive_values_stay_empty() -> None:
    assert redact_structure({"password": ""}) == {"password": ""}
    assert redact_structure({"token": None}) == {"token": None}


def test_redact_event_processes_every_field() -> None:
    register_secret_values(["Xy7!secret"])
    event = {
        "event": "connect_failed",
        "password": "Xy7!secret",
        "detail": "AUTH Xy7!secret rejected",
        "attempt": 2,
    }

    result = redact_event(None, "error", event)

    assert result is event
    assert event == {
        "event": "connect_failed",
        "password": REDACTED_VALUE,
        "detail": f"AUTH {REDACTED_VALUE} rejected",
        "attempt": 2,
    }
