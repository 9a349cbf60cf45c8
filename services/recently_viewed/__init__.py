"""Visitor-local record of recently viewed postings."""

from .recency_cache import (
    MAX_RECENT_JOBS,
    RETENTION,
    STORAGE_KEY,
    RecencyCache,
    RecentlyViewedEntry,
)
from .storage import (
    KeyValueStorage,
    LocalFileStorage,
    PersistenceReadError,
    PersistenceWriteError,
)

__all__ = [
    "MAX_RECENT_JOBS",
    "RETENTION",
    "STORAGE_KEY",
    "RecencyCache",
    "RecentlyViewedEntry",
    "KeyValueStorage",
    "LocalFileStorage",
    "PersistenceReadError",
    "PersistenceWriteError",
]
