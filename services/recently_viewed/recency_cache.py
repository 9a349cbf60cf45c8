"""
Recently Viewed Jobs Cache

Visitor-local, bounded record of the postings a visitor opened most
recently. The list is capped at MAX_RECENT_JOBS entries, entries older than
RETENTION are dropped before they can be read, and re-viewing a posting moves
it to the front instead of adding a duplicate.

The in-memory list is authoritative for the life of the process; writes to
storage are best-effort and storage read failures degrade to an empty list.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from dateutil.parser import isoparse

from ..shared.structured_logging import get_structured_logger
from .storage import KeyValueStorage, PersistenceReadError, PersistenceWriteError

logger = logging.getLogger(__name__)

STORAGE_KEY = "recentlyViewedJobs"
MAX_RECENT_JOBS = 10
RETENTION = timedelta(days=30)


@dataclass(frozen=True)
class RecentlyViewedEntry:
    """One viewed posting, optionally with a summary captured at view time."""

    job_id: str
    viewed_at: datetime
    job: dict[str, Any] | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data = {"jobId": self.job_id, "viewedAt": self.viewed_at.isoformat()}
        if self.job is not None:
            data["job"] = self.job
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecentlyViewedEntry:
        """Parse a stored entry.

        Raises:
            KeyError, TypeError, ValueError: If the entry is unreadable
        """
        job_id = data["jobId"]
        if not isinstance(job_id, str) or not job_id:
            raise ValueError("jobId must be a non-empty string")
        viewed_at = isoparse(data["viewedAt"])
        if viewed_at.tzinfo is None:
            viewed_at = viewed_at.replace(tzinfo=UTC)
        job = data.get("job")
        return cls(job_id=job_id, viewed_at=viewed_at, job=job if isinstance(job, dict) else None)


class RecencyCache:
    """Bounded, TTL-pruned list of recently viewed postings for one visitor."""

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Callable[[], datetime] | None = None,
        capacity: int = MAX_RECENT_JOBS,
        retention: timedelta = RETENTION,
        storage_key: str = STORAGE_KEY,
    ):
        """
        Initialize the cache. Nothing is read until first use.

        Args:
            storage: Key-value store holding the serialized list
            clock: Callable returning the current aware datetime
            capacity: Maximum number of entries kept
            retention: Age after which an entry is dropped
            storage_key: Key the list is stored under

        Raises:
            ValueError: If storage is None or capacity is not positive
        """
        if storage is None:
            raise ValueError("KeyValueStorage is required")
        if capacity < 1:
            raise ValueError("Capacity must be at least 1")

        self.storage = storage
        self.capacity = capacity
        self.retention = retention
        self.storage_key = storage_key
        self._clock = clock or (lambda: datetime.now(UTC))
        self._entries: list[RecentlyViewedEntry] | None = None
        self._lock = threading.RLock()
        self._log = get_structured_logger(__name__, storage_key=storage_key)

    def record(self, job_id: str, job: dict[str, Any] | None = None) -> RecentlyViewedEntry:
        """
        Record a view of a posting, moving it to the front of the list.

        Args:
            job_id: Posting ID
            job: Optional posting summary to keep alongside the entry

        Returns:
            The new entry
        """
        if not job_id:
            raise ValueError("Job ID is required")

        with self._lock:
            entries = self._current_entries()
            entry = RecentlyViewedEntry(job_id=str(job_id), viewed_at=self._now(), job=job)
            updated = [entry] + [e for e in entries if e.job_id != entry.job_id]
            self._entries = updated[: self.capacity]
            self._persist(self._entries)
            return entry

    def remove(self, job_id: str) -> bool:
        """
        Remove a posting from the list.

        Returns:
            True if an entry was removed, False if it was not present
        """
        with self._lock:
            entries = self._current_entries()
            remaining = [e for e in entries if e.job_id != str(job_id)]
            if len(remaining) == len(entries):
                return False
            self._entries = remaining
            self._persist(remaining)
            return True

    def clear(self) -> None:
        """Empty the list and delete it from storage."""
        with self._lock:
            self._entries = []
            try:
                self.storage.remove(self.storage_key)
            except (PersistenceWriteError, OSError) as e:
                self._log.warning(f"Failed to clear stored entries: {e}")

    def list_entries(self) -> list[RecentlyViewedEntry]:
        """
        Return entries most recent first, with expired ones already removed.

        Returns:
            List of RecentlyViewedEntry (a copy; mutating it has no effect)
        """
        with self._lock:
            return list(self._current_entries())

    def contains(self, job_id: str) -> bool:
        """Check whether a posting is in the (pruned) list."""
        return any(e.job_id == str(job_id) for e in self.list_entries())

    def __contains__(self, job_id: object) -> bool:
        return self.contains(str(job_id))

    def __len__(self) -> int:
        return len(self.list_entries())

    def _current_entries(self) -> list[RecentlyViewedEntry]:
        """Load on first use, then drop anything that aged out since."""
        if self._entries is None:
            self._entries = self._load()

        cutoff = self._now() - self.retention
        fresh = [e for e in self._entries if e.viewed_at > cutoff]
        if len(fresh) != len(self._entries):
            self._entries = fresh
            self._persist(fresh)
        return self._entries

    def _load(self) -> list[RecentlyViewedEntry]:
        try:
            raw = self.storage.get(self.storage_key)
            if raw is None:
                return []
            parsed = json.loads(raw)
        except (PersistenceReadError, OSError, ValueError, TypeError) as e:
            self._log.error(f"Error loading recently viewed jobs: {e}")
            return []

        if not isinstance(parsed, list):
            self._log.error("Stored recently viewed jobs are not a list; starting empty")
            return []

        cutoff = self._now() - self.retention
        entries = []
        for item in parsed:
            try:
                entry = RecentlyViewedEntry.from_dict(item)
            except (KeyError, TypeError, ValueError, OverflowError):
                continue
            if entry.viewed_at > cutoff:
                entries.append(entry)

        entries.sort(key=lambda e: e.viewed_at, reverse=True)
        unique = list({e.job_id: e for e in reversed(entries)}.values())
        unique.sort(key=lambda e: e.viewed_at, reverse=True)
        unique = unique[: self.capacity]

        if len(unique) != len(parsed):
            self._log.info(f"Pruned {len(parsed) - len(unique)} stale entries on load")
            self._persist(unique)
        return unique

    def _persist(self, entries: list[RecentlyViewedEntry]) -> None:
        try:
            payload = json.dumps([e.to_dict() for e in entries], default=str)
            self.storage.set(self.storage_key, payload)
        except (PersistenceWriteError, OSError) as e:
            self._log.warning(f"Error saving recently viewed jobs: {e}")

    def _now(self) -> datetime:
        now = self._clock()
        return now if now.tzinfo else now.replace(tzinfo=UTC)
