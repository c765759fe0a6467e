"""Last-known values per metric category.

The refresh loop is the only writer; metric scrapes read snapshots. Entries
are immutable and replaced whole under a lock, so a reader never sees a
value from one fetch paired with the timestamp of another.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import Any

from .categories import MetricCategory


class _NeverFetched:
    """Marker for a category no refresh has attempted yet."""

    _instance: _NeverFetched | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NEVER_FETCHED"

    def __bool__(self) -> bool:
        return False


NEVER_FETCHED = _NeverFetched()


@dataclass(frozen=True)
class CacheEntry:
    """State of one category after at least one refresh attempt."""

    category: MetricCategory
    value: Any = None
    last_fetch: float | None = None
    last_success: float | None = None
    last_error: str | None = None

    @property
    def has_value(self) -> bool:
        return self.last_success is not None

    @property
    def up(self) -> bool:
        """True when the most recent attempt succeeded."""
        return self.last_error is None and self.has_value


class MetricCache:
    """Thread-safe map from category to its latest CacheEntry."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[MetricCategory, CacheEntry] = {}

    def get(self, category: MetricCategory) -> CacheEntry | _NeverFetched:
        with self._lock:
            return self._entries.get(category, NEVER_FETCHED)

    def snapshot(self) -> dict[MetricCategory, CacheEntry]:
        """Copy of all entries, consistent at a single instant."""
        with self._lock:
            return dict(self._entries)

    def publish_success(self, category: MetricCategory, value: Any, timestamp: float | None = None) -> CacheEntry:
        """Store a freshly fetched value."""
        now = self._clock() if timestamp is None else timestamp
        entry = CacheEntry(category=category, value=value, last_fetch=now, last_success=now, last_error=None)
        with self._lock:
            self._entries[category] = entry
        return entry

    def publish_failure(
        self, category: MetricCategory, error: BaseException | str, timestamp: float | None = None
    ) -> CacheEntry:
        """Record a failed attempt, keeping the last successful value."""
        now = self._clock() if timestamp is None else timestamp
        with self._lock:
            previous = self._entries.get(category)
            if previous is None:
                entry = CacheEntry(category=category, last_fetch=now, last_error=str(error))
            else:
                entry = replace(previous, last_fetch=now, last_error=str(error))
            self._entries[category] = entry
        return entry
