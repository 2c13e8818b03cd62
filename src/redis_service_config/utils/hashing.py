"""
redis-service-config — hashing utilities

File: src/redis_service_config/utils/hashing.py
Last updated: 2026-10-18

Purpose
- Deterministic SHA-256 helpers for configuration file fingerprints and secret bindings.

Functional requirements
- Secret bindings store only a digest of the resolved value, never the value itself.

Non-functional requirements
- Standard library only.
"""

from __future__ import annotations

import hashlib

__all__ = [
    "sha256_bytes",
    "sha256_text",
]


def sha256_bytes(data: bytes) -> str:
    """Return SHA-256 hex digest for raw bytes."""

    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str, *, encoding: str = "utf-8") -> str:
    """Return SHA-256 hex digest for text encoded with ``encoding``."""

    return sha256_bytes(text.encode(encoding))
