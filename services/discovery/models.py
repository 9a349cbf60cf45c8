"""Query types for posting discovery."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from dateutil.parser import isoparse

SORT_RANKED = "ranked"
SORT_NEWEST = "newest"
SORT_SALARY = "salary"
SORT_OPTIONS = (SORT_RANKED, SORT_NEWEST, SORT_SALARY)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class SearchFilter:
    """Caller-selectable filters for a discovery search.

    The active/non-deleted/non-expired restriction is not a filter; it is
    applied to every search regardless of these fields.
    """

    text: str | None = None
    city: str | None = None
    status: str | None = None
    category: str | None = None
    job_type: str | None = None
    employer_id: str | None = None
    posted_after: datetime | None = None
    posted_before: datetime | None = None
    min_salary: float | None = None
    max_salary: float | None = None

    def __post_init__(self):
        # Bounds are compared against aware UTC timestamps
        for field in ("posted_after", "posted_before"):
            object.__setattr__(self, field, parse_timestamp(getattr(self, field)))


@dataclass(frozen=True)
class PageRequest:
    """Offset/limit window over ranked results."""

    offset: int = 0
    limit: int = DEFAULT_PAGE_SIZE

    def __post_init__(self):
        if self.offset < 0:
            raise ValueError("Offset must be non-negative")
        if self.limit < 1 or self.limit > MAX_PAGE_SIZE:
            raise ValueError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

    @classmethod
    def for_page(cls, page: int, limit: int = DEFAULT_PAGE_SIZE) -> PageRequest:
        """Build a window from a 1-based page number."""
        if page < 1:
            raise ValueError("Page must be at least 1")
        return cls(offset=(page - 1) * limit, limit=limit)


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce an ISO-8601 string or datetime to an aware UTC-comparable datetime.

    Naive values are assumed to be UTC.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = isoparse(value)
    if not isinstance(value, datetime):
        raise ValueError(f"Invalid timestamp: {value!r}")
    return value if value.tzinfo else value.replace(tzinfo=UTC)
