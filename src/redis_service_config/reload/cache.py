"""
redis-service-config — configuration cache.

File: src/redis_service_config/reload/cache.py
Last updated: 2026-10-18

Purpose
- Hold the configuration currently served for each configuration file path.

What should be included in this file
- ``CacheEntry`` immutable snapshot (config, file fingerprint, load time, generation).
- ``ConfigurationCache`` with get/put/invalidate/clear, staleness checks and statistics.

Functional requirements
- Readers never block; writers are serialized and publish a new entry in one assignment,
  so a reader observes either the previous or the next entry, never a mix.
- Paths are normalized so equivalent spellings share one entry.

Non-functional requirements
- Hit/miss counters are approximate under concurrent readers.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from redis_service_config.config.model import ServiceConfiguration
from redis_service_config.utils.fs import FileFingerprint, PathLike


@dataclass(frozen=True, slots=True)
class CacheEntry:
    config: ServiceConfiguration
    fingerprint: FileFingerprint | None
    loaded_at: datetime
    generation: int


@dataclass(frozen=True, slots=True)
class CacheStatistics:
    entries: int
    hits: int
    misses: int
    replacements: int
    invalidations: int

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class ConfigurationCache:
    """Per-path store of the configuration being served."""

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] | None = None,
        logger: Any | None = None,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._write_lock = threading.Lock()
        self._clock = clock if clock is not None else (lambda: datetime.now(UTC))
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._generation = 0
        self._hits = 0
        self._misses = 0
        self._replacements = 0
        self._invalidations = 0

    @staticmethod
    def key_for(path: PathLike) -> str:
        return str(Path(path).expanduser().resolve(strict=False))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self.key_for(path) in self._entries

    def get_entry(self, path: PathLike) -> CacheEntry | None:
        entry = self._entries.get(self.key_for(path))
        if entry is None:
            self._misses += 1
        else:
            self._hits += 1
        return entry

    def get(self, path: PathLike) -> ServiceConfiguration | None:
        entry = self.get_entry(path)
        return entry.config if entry is not None else None

    def put(
        self,
        path: PathLike,
        config: ServiceConfiguration,
        fingerprint: FileFingerprint | None = None,
    ) -> CacheEntry:
        key = self.key_for(path)
        with self._write_lock:
            self._generation += 1
            entry = CacheEntry(
                config=config,
                fingerprint=fingerprint,
                loaded_at=self._clock(),
                generation=self._generation,
            )
            replaced = key in self._entries
            self._entries[key] = entry
            if replaced:
                self._replacements += 1
        self._logger.debug(
            "config_cache_published",
            path=key,
            generation=entry.generation,
            replaced=replaced,
        )
        return entry

    def invalidate(self, path: PathLike) -> bool:
        key = self.key_for(path)
        with self._write_lock:
            removed = self._entries.pop(key, None) is not None
            if removed:
                self._invalidations += 1
        if removed:
            self._logger.debug("config_cache_invalidated", path=key)
        return removed

    def clear(self) -> None:
        with self._write_lock:
            self._invalidations += len(self._entries)
            self._entries = {}
        self._logger.debug("config_cache_cleared")

    def is_stale(self, path: PathLike, fingerprint: FileFingerprint) -> bool:
        """True when no entry exists or its content digest differs from ``fingerprint``."""

        entry = self._entries.get(self.key_for(path))
        if entry is None or entry.fingerprint is None:
            return True
        return not entry.fingerprint.same_content(fingerprint)

    def statistics(self) -> CacheStatistics:
        return CacheStatistics(
            entries=len(self._entries),
            hits=self._hits,
            misses=self._misses,
            replacements=self._replacements,
            invalidations=self._invalidations,
        )


__all__ = ["CacheEntry", "CacheStatistics", "ConfigurationCache"]
