"""Utility exports for filesystem, hashing, and concurrency helpers."""

from redis_service_config.utils.concurrency import (
    CancellationToken,
    KeyedSingleFlight,
    run_with_timeout,
)
from redis_service_config.utils.fs import FileFingerprint, atomic_write, fingerprint, read_text
from redis_service_config.utils.hashing import sha256_bytes, sha256_text

__all__ = [
    "CancellationToken",
    "FileFingerprint",
    "KeyedSingleFlight",
    "atomic_write",
    "fingerprint",
    "read_text",
    "run_with_timeout",
    "sha256_bytes",
    "sha256_text",
]
