"""
Discovery Index Service

Serves ranked, filtered pages of postings to job seekers and keeps the
queryable projection current when a posting changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ..shared.structured_logging import get_structured_logger
from .errors import DiscoveryError
from .index_store import PostingIndexStore
from .models import SORT_OPTIONS, SORT_RANKED, PageRequest, SearchFilter, parse_timestamp
from .ranking import DEFAULT_TIER_RANKS, tier_rank

logger = logging.getLogger(__name__)


class DiscoveryIndex:
    """
    Ranked job-discovery index.

    Every search excludes deleted, inactive and expired postings before any
    caller filter or ordering is considered. Ranked order is tier rank, then
    text relevance (when a text query is given), then posted date, then
    posting ID.

    The index performs no retries or locking of its own: timeouts and store
    outages surface as DiscoveryError subclasses for the caller to handle,
    and per-posting write ordering is delegated to the store.
    """

    def __init__(
        self,
        store: PostingIndexStore,
        tier_ranks: dict[str, int] | None = None,
        default_timeout: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the discovery index.

        Args:
            store: Backing index store
            tier_ranks: Tier name to numeric rank mapping (higher ranks first)
            default_timeout: Seconds a search may take when the caller passes none
            clock: Callable returning the current aware datetime

        Raises:
            ValueError: If store is None
        """
        if store is None:
            raise ValueError("PostingIndexStore is required")

        self.store = store
        self.tier_ranks = dict(tier_ranks or DEFAULT_TIER_RANKS)
        self.default_timeout = default_timeout
        self._clock = clock or (lambda: datetime.now(UTC))

    def search(
        self,
        filters: SearchFilter | None = None,
        sort: str = SORT_RANKED,
        page: PageRequest | None = None,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """
        Return one page of matching discoverable postings in ranked order.

        Args:
            filters: Caller filters (text, city, status, category, dates, salary)
            sort: One of 'ranked', 'newest', 'salary'
            page: Offset/limit window (default first 10)
            timeout: Seconds before the store call is aborted

        Returns:
            List of posting dictionaries

        Raises:
            ValueError: If sort is unknown
            DiscoveryTimeoutError: If the search exceeds the timeout
            StoreUnavailableError: If the backing store cannot be reached
        """
        if sort not in SORT_OPTIONS:
            raise ValueError(f"Sort must be one of: {', '.join(SORT_OPTIONS)}")

        filters = filters or SearchFilter()
        page = page or PageRequest()
        timeout = timeout if timeout is not None else self.default_timeout
        search_logger = get_structured_logger(
            __name__, sort=sort, offset=page.offset, limit=page.limit, text=filters.text
        )

        try:
            results = self.store.search(filters, sort, page, self._now(), timeout=timeout)
        except DiscoveryError as e:
            search_logger.warning(f"Search failed: {type(e).__name__}: {e}")
            raise

        search_logger.debug(f"Search returned {len(results)} posting(s)")
        return results

    def count(self, filters: SearchFilter | None = None, timeout: float | None = None) -> int:
        """
        Count discoverable postings matching filters, for pagination.

        Raises:
            DiscoveryTimeoutError: If the count exceeds the timeout
            StoreUnavailableError: If the backing store cannot be reached
        """
        timeout = timeout if timeout is not None else self.default_timeout
        return self.store.count(filters or SearchFilter(), self._now(), timeout=timeout)

    def upsert_index_entry(self, posting: dict[str, Any]) -> bool:
        """
        Insert or refresh a posting's index entry.

        Idempotent: re-applying the same posting leaves the index unchanged.
        An update whose ``updated_at`` is older than the stored entry's is
        ignored.

        Args:
            posting: Posting dictionary (see build_index_entry)

        Returns:
            True if the entry was written, False if it was stale

        Raises:
            ValueError: If the posting lacks required fields
        """
        entry = self.build_index_entry(posting)
        applied = self.store.upsert(entry)
        if applied:
            logger.debug(
                f"Indexed posting {entry['posting_id']} "
                f"(status={entry['status']}, deleted={entry['is_deleted']}, tier={entry['tier']})"
            )
        return applied

    def remove_index_entry(self, posting_id: str) -> bool:
        """
        Remove a posting from the index. Removing an absent posting is a no-op.

        Returns:
            True if an entry was removed
        """
        if not posting_id:
            raise ValueError("Posting ID is required")
        removed = self.store.remove(str(posting_id))
        if removed:
            logger.debug(f"Removed posting {posting_id} from index")
        return removed

    def build_index_entry(self, posting: dict[str, Any]) -> dict[str, Any]:
        """
        Normalize a posting into the projection stored by the index.

        Args:
            posting: Posting dictionary. ``posting_id``, ``employer_id`` and
                ``title`` and ``posted_at`` are required; timestamps may be
                datetimes or ISO strings.

        Returns:
            Index entry with a numeric ``tier_rank``

        Raises:
            ValueError: If a required field is missing or a timestamp is invalid
        """
        for field in ("posting_id", "employer_id", "title", "posted_at"):
            if not posting.get(field):
                raise ValueError(f"Posting field '{field}' is required")

        tier = posting.get("tier") or "basic"
        return {
            "posting_id": str(posting["posting_id"]),
            "employer_id": str(posting["employer_id"]),
            "title": posting["title"],
            "description": posting.get("description") or "",
            "tags": [str(tag) for tag in posting.get("tags") or []],
            "city": posting.get("city"),
            "region": posting.get("region"),
            "job_type": posting.get("job_type"),
            "category": posting.get("category"),
            "salary_min": _to_float(posting.get("salary_min")),
            "salary_max": _to_float(posting.get("salary_max")),
            "salary_currency": posting.get("salary_currency"),
            "salary_visible": bool(posting.get("salary_visible", True)),
            "tier": tier,
            "tier_rank": tier_rank(tier, self.tier_ranks),
            "status": posting.get("status") or "active",
            "is_deleted": bool(posting.get("is_deleted", False)),
            "posted_at": parse_timestamp(posting["posted_at"]),
            "expires_at": parse_timestamp(posting.get("expires_at")),
            "updated_at": parse_timestamp(posting.get("updated_at")),
        }

    def _now(self) -> datetime:
        now = self._clock()
        return now if now.tzinfo else now.replace(tzinfo=UTC)


def _to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)
