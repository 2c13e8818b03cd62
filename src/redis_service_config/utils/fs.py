"""
redis-service-config — filesystem utilities

File: src/redis_service_config/utils/fs.py
Last updated: 2026-10-18

Purpose
- Provide the file primitives used by the configuration loader and reload machinery:
  atomic writes, text reads and cheap change fingerprints.

Functional requirements
- Atomic writes use temp files in the destination directory and replace in a single step,
  so a reader never observes a half-written configuration document.
- Fingerprints combine size, modification time and a content digest.

Non-functional requirements
- Standard library only and cross-platform behavior where feasible.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from redis_service_config.utils.hashing import sha256_bytes

PathLike = str | os.PathLike[str]

__all__ = [
    "FileFingerprint",
    "PathLike",
    "atomic_write",
    "fingerprint",
    "read_text",
]


@dataclass(frozen=True, slots=True)
class FileFingerprint:
    """Identity of one on-disk version of a file."""

    size: int
    mtime_ns: int
    digest: str

    def same_content(self, other: FileFingerprint | None) -> bool:
        return other is not None and self.digest == other.digest


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """
    Atomically write ``data`` to ``path``.

    The write strategy is:
    1. create temp file in the same directory,
    2. write + flush + fsync file data,
    3. replace target via ``os.replace``.
    """

    target = Path(path)
    target_parent = target.parent.resolve(strict=True)
    if not target_parent.is_dir():
        raise NotADirectoryError(f"{target_parent!s} is not a directory")

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=str(target_parent),
    )
    temp_path = Path(temp_name)
    payload = data.encode(encoding) if isinstance(data, str) else data

    try:
        with os.fdopen(fd, "wb") as file_handle:
            file_handle.write(payload)
            file_handle.flush()
            os.fsync(file_handle.fileno())

        os.replace(temp_path, target)
        _fsync_directory(target_parent)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


def read_text(path: PathLike, *, encoding: str = "utf-8") -> str:
    """Read ``path`` as text, stripping a leading byte-order mark."""

    text = Path(path).read_text(encoding=encoding)
    return text[1:] if text.startswith("﻿") else text


def fingerprint(path: PathLike) -> FileFingerprint:
    """Fingerprint the current on-disk content of ``path``."""

    target = Path(path)
    stat = target.stat()
    return FileFingerprint(
        size=stat.st_size,
        mtime_ns=stat.st_mtime_ns,
        digest=sha256_bytes(target.read_bytes()),
    )


def _fsync_directory(path: Path) -> None:
    """
    Best-effort directory fsync for metadata durability after ``os.replace``.

    Some platforms/filesystems do not support fsync on directories.
    """

    if os.name == "nt":
        return

    flags = os.O_RDONLY
    if hasattr(os, "O_DIRECTORY"):
        flags |= os.O_DIRECTORY

    try:
        dir_fd = os.open(path, flags)
    except OSError:
        return

    try:
        os.fsync(dir_fd)
    except OSError:
        return
    finally:
        os.close(dir_fd)
