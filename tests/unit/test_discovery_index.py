"""Unit tests for DiscoveryIndex over the in-memory store."""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from services.discovery import (
    DiscoveryIndex,
    DiscoveryTimeoutError,
    InMemoryPostingIndexStore,
    PageRequest,
    PostingIndexStore,
    SearchFilter,
    StoreUnavailableError,
)


@pytest.fixture
def store():
    return InMemoryPostingIndexStore()


@pytest.fixture
def index(store, clock):
    return DiscoveryIndex(store=store, clock=clock)


@pytest.fixture
def make_posting(clock):
    def _make(posting_id, **overrides):
        posting = {
            "posting_id": posting_id,
            "employer_id": "e1",
            "title": "Python Developer",
            "tags": ["backend"],
            "city": "Tirana",
            "category": "IT",
            "job_type": "full-time",
            "tier": "basic",
            "status": "active",
            "is_deleted": False,
            "posted_at": clock.now - timedelta(days=1),
            "expires_at": clock.now + timedelta(days=29),
            "updated_at": clock.now - timedelta(days=1),
        }
        posting.update(overrides)
        return posting

    return _make


def ids(results):
    return [r["posting_id"] for r in results]


class TestDiscoveryIndex:
    """Test cases for DiscoveryIndex."""

    def test_init_requires_store(self):
        with pytest.raises(ValueError, match="PostingIndexStore is required"):
            DiscoveryIndex(store=None)

    def test_excludes_deleted_inactive_and_expired(self, index, make_posting, clock):
        """Only active, non-deleted, unexpired postings are returned."""
        index.upsert_index_entry(make_posting("live"))
        index.upsert_index_entry(make_posting("deleted", is_deleted=True))
        index.upsert_index_entry(make_posting("paused", status="paused"))
        index.upsert_index_entry(make_posting("expired", expires_at=clock.now))

        assert ids(index.search()) == ["live"]
        assert index.count() == 1

    def test_status_filter_cannot_surface_hidden_postings(self, index, make_posting):
        """Filtering on another status still returns nothing."""
        index.upsert_index_entry(make_posting("closed", status="closed"))

        assert index.search(SearchFilter(status="closed")) == []

    def test_posting_disappears_once_expired(self, index, make_posting, clock):
        """A posting drops out of results when its expiry passes."""
        index.upsert_index_entry(make_posting("p1", expires_at=clock.now + timedelta(hours=1)))
        assert ids(index.search()) == ["p1"]

        clock.advance(hours=1)

        assert index.search() == []

    def test_ranked_order(self, index, make_posting, clock):
        """Tier first, then recency, then posting ID."""
        index.upsert_index_entry(make_posting("basic-new", posted_at=clock.now))
        index.upsert_index_entry(
            make_posting("gold-old", tier="gold", posted_at=clock.now - timedelta(days=5))
        )
        index.upsert_index_entry(make_posting("gold-new-b", tier="gold", posted_at=clock.now))
        index.upsert_index_entry(make_posting("gold-new-a", tier="premium", posted_at=clock.now))
        index.upsert_index_entry(make_posting("silver", tier="silver", posted_at=clock.now))

        assert ids(index.search()) == [
            "gold-new-a",
            "gold-new-b",
            "gold-old",
            "silver",
            "basic-new",
        ]

    def test_relevance_orders_within_tier(self, index, make_posting):
        """Title matches outrank tag-only matches in the same tier."""
        index.upsert_index_entry(make_posting("tag", title="Engineer", tags=["python"]))
        index.upsert_index_entry(make_posting("title", title="Python Engineer", tags=[]))
        index.upsert_index_entry(make_posting("none", title="Accountant", tags=["finance"]))

        results = index.search(SearchFilter(text="python"))

        assert ids(results) == ["title", "tag"]
        assert index.count(SearchFilter(text="python")) == 2

    def test_tier_outranks_relevance(self, index, make_posting):
        """A paid posting with a weaker match still comes first."""
        index.upsert_index_entry(make_posting("basic", title="Python Engineer"))
        index.upsert_index_entry(
            make_posting("gold", tier="gold", title="Engineer", tags=["python"])
        )

        assert ids(index.search(SearchFilter(text="python"))) == ["gold", "basic"]

    def test_naive_date_bounds_are_treated_as_utc(self, index, make_posting, clock):
        index.upsert_index_entry(make_posting("recent"))
        index.upsert_index_entry(make_posting("old", posted_at=clock.now - timedelta(days=20)))
        cutoff = (clock.now - timedelta(days=10)).replace(tzinfo=None)

        assert ids(index.search(SearchFilter(posted_after=cutoff))) == ["recent"]
        assert index.count(SearchFilter(posted_before=cutoff)) == 1

    def test_string_date_bounds_are_parsed(self, index, make_posting, clock):
        index.upsert_index_entry(make_posting("recent"))

        filters = SearchFilter(posted_after="2024-02-01T00:00:00")

        assert filters.posted_after.utcoffset() == timedelta(0)
        assert ids(index.search(filters)) == ["recent"]

    def test_pages_are_disjoint_and_cover_results(self, index, make_posting, clock):
        """Consecutive pages do not overlap and together return every match."""
        for i in range(25):
            index.upsert_index_entry(
                make_posting(f"p{i:02d}", posted_at=clock.now - timedelta(minutes=i))
            )

        pages = [index.search(page=PageRequest.for_page(n, 10)) for n in (1, 2, 3)]

        assert [len(p) for p in pages] == [10, 10, 5]
        all_ids = [pid for page in pages for pid in ids(page)]
        assert len(set(all_ids)) == 25
        assert index.count() == 25

    def test_newest_and_salary_sorts(self, index, make_posting, clock):
        index.upsert_index_entry(
            make_posting("old-rich", tier="gold", salary_max=5000, posted_at=clock.now - timedelta(days=3))
        )
        index.upsert_index_entry(make_posting("new-poor", salary_max=800, posted_at=clock.now))
        index.upsert_index_entry(make_posting("unpriced", posted_at=clock.now - timedelta(days=1)))

        assert ids(index.search(sort="newest")) == ["new-poor", "unpriced", "old-rich"]
        assert ids(index.search(sort="salary")) == ["old-rich", "new-poor", "unpriced"]

    def test_unknown_sort(self, index):
        with pytest.raises(ValueError, match="Sort must be one of"):
            index.search(sort="random")

    def test_upsert_is_idempotent(self, index, store, make_posting):
        posting = make_posting("p1")

        assert index.upsert_index_entry(posting) is True
        assert index.upsert_index_entry(posting) is True
        assert len(store) == 1
        assert ids(index.search()) == ["p1"]

    def test_stale_update_is_ignored(self, index, make_posting, clock):
        """An update older than the stored entry does not overwrite it."""
        index.upsert_index_entry(make_posting("p1", title="New Title", updated_at=clock.now))

        applied = index.upsert_index_entry(
            make_posting("p1", title="Old Title", updated_at=clock.now - timedelta(hours=1))
        )

        assert applied is False
        assert index.search()[0]["title"] == "New Title"

    def test_soft_delete_update_hides_posting(self, index, make_posting, clock):
        index.upsert_index_entry(make_posting("p1"))

        index.upsert_index_entry(make_posting("p1", is_deleted=True, updated_at=clock.now))

        assert index.search() == []

    def test_remove_index_entry(self, index, make_posting):
        index.upsert_index_entry(make_posting("p1"))

        assert index.remove_index_entry("p1") is True
        assert index.remove_index_entry("p1") is False
        assert index.search() == []

    def test_results_are_copies(self, index, make_posting):
        """Mutating a result does not change the index."""
        index.upsert_index_entry(make_posting("p1"))

        index.search()[0]["tags"].append("mutated")

        assert index.search()[0]["tags"] == ["backend"]

    def test_results_omit_internal_fields(self, index, make_posting):
        index.upsert_index_entry(make_posting("p1", tier="gold"))

        result = index.search()[0]

        assert "tier_rank" not in result
        assert result["tier"] == "gold"

    def test_build_index_entry_requires_fields(self, index):
        with pytest.raises(ValueError, match="posting_id"):
            index.build_index_entry({"employer_id": "e1", "title": "x"})

    def test_build_index_entry_requires_posted_at(self, index):
        with pytest.raises(ValueError, match="posted_at"):
            index.build_index_entry({"posting_id": "p1", "employer_id": "e1", "title": "x"})

    def test_reupsert_keeps_ranking_position(self, index, make_posting, clock):
        posting = make_posting("p1", posted_at=clock.now - timedelta(days=2))
        index.upsert_index_entry(posting)
        clock.advance(days=1)

        index.upsert_index_entry(posting)

        assert index.search()[0]["posted_at"] == posting["posted_at"]

    def test_build_index_entry_defaults(self, index, clock):
        entry = index.build_index_entry(
            {
                "posting_id": 7,
                "employer_id": 3,
                "title": "Cook",
                "salary_max": "1200",
                "posted_at": clock.now.isoformat(),
            }
        )

        assert entry["posting_id"] == "7"
        assert entry["tier"] == "basic"
        assert entry["tier_rank"] == 0
        assert entry["status"] == "active"
        assert entry["salary_visible"] is True
        assert entry["salary_max"] == 1200.0
        assert entry["posted_at"] == clock.now

    def test_timeout_propagates(self, clock):
        """Store timeouts reach the caller as DiscoveryTimeoutError."""
        store = Mock(spec=PostingIndexStore)
        store.search.side_effect = DiscoveryTimeoutError("Search exceeded timeout of 0.5s")
        index = DiscoveryIndex(store=store, default_timeout=0.5, clock=clock)

        with pytest.raises(DiscoveryTimeoutError):
            index.search()

        assert store.search.call_args.kwargs["timeout"] == 0.5

    def test_store_unavailable_propagates(self, clock):
        store = Mock(spec=PostingIndexStore)
        store.count.side_effect = StoreUnavailableError("down")
        index = DiscoveryIndex(store=store, clock=clock)

        with pytest.raises(StoreUnavailableError):
            index.count()
