"""
Posting Ranking Policy

Pure functions deciding which postings are discoverable and in what order
they are served. The in-memory index store evaluates these directly; the
PostgreSQL store expresses the same ordering in SQL.

Ranked order:
1. Tier rank (higher-paying tiers first)
2. Text relevance when a text query is present, otherwise 0 for all
3. Posted date (most recent first)
4. Posting ID (ascending) as a deterministic tie-break
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from .models import SORT_NEWEST, SORT_RANKED, SORT_SALARY, SearchFilter

DEFAULT_TIER_RANKS = {
    "basic": 0,
    "bronze": 1,
    "silver": 2,
    "gold": 3,
    "premium": 3,
}

# Relevance points per matched query term
TITLE_WEIGHT = 2.0
TAG_WEIGHT = 1.0

ACTIVE_STATUS = "active"

_WORD_RE = re.compile(r"\b\w+\b")


def tokenize(text: str | None) -> list[str]:
    """
    Split free text into unique lowercase terms, preserving first-seen order.

    Args:
        text: Free text (may be None)

    Returns:
        List of terms
    """
    if not text:
        return []
    return list(dict.fromkeys(_WORD_RE.findall(text.lower())))


def tier_rank(tier: Any, tier_ranks: dict[str, int] | None = None) -> int:
    """
    Map a tier name to its numeric rank. Unknown tiers rank 0.

    Numeric tiers are taken as-is.
    """
    if isinstance(tier, int) and not isinstance(tier, bool):
        return tier
    if not isinstance(tier, str):
        return 0
    return (tier_ranks or DEFAULT_TIER_RANKS).get(tier.strip().lower(), 0)


def is_discoverable(posting: dict[str, Any], now: datetime) -> bool:
    """
    Check the exclusion rule: not deleted, active, and not past expiry.

    Args:
        posting: Posting index entry
        now: Current instant (aware)

    Returns:
        True if the posting may appear in any search result
    """
    if posting.get("is_deleted"):
        return False
    if posting.get("status") != ACTIVE_STATUS:
        return False
    expires_at = posting.get("expires_at")
    return expires_at is None or expires_at > now


def relevance_score(posting: dict[str, Any], terms: list[str]) -> float:
    """
    Score how well a posting's title and tags match the query terms.

    Each term found in the title earns TITLE_WEIGHT, each term found in the
    tags earns TAG_WEIGHT; the sum is averaged over the number of terms.

    Args:
        posting: Posting index entry
        terms: Query terms from tokenize()

    Returns:
        Relevance score (0.0 when nothing matches or no terms)
    """
    if not terms:
        return 0.0

    title_words = set(tokenize(posting.get("title")))
    tag_words = set(tokenize(" ".join(posting.get("tags") or [])))

    points = 0.0
    for term in terms:
        if term in title_words:
            points += TITLE_WEIGHT
        if term in tag_words:
            points += TAG_WEIGHT
    return round(points / len(terms), 6)


def matches_filter(posting: dict[str, Any], filters: SearchFilter, terms: list[str]) -> bool:
    """
    Check the caller-selected filters (not the exclusion rule).

    Text terms are OR-ed: a posting matches if any term appears in its title
    or tags. The salary bounds test for overlap with the posting's range.
    """
    if terms and relevance_score(posting, terms) == 0.0:
        return False

    for field in ("city", "status", "category", "job_type", "employer_id"):
        expected = getattr(filters, field)
        if expected is not None and posting.get(field) != expected:
            return False

    posted_at = posting.get("posted_at")
    if filters.posted_after is not None and (posted_at is None or posted_at < filters.posted_after):
        return False
    if filters.posted_before is not None and (
        posted_at is None or posted_at > filters.posted_before
    ):
        return False

    salary_min = posting.get("salary_min")
    salary_max = posting.get("salary_max")
    if filters.min_salary is not None and not _any_at_least(
        (salary_min, salary_max), filters.min_salary
    ):
        return False
    if filters.max_salary is not None and not _any_at_most(
        (salary_min, salary_max), filters.max_salary
    ):
        return False

    return True


def sort_key(posting: dict[str, Any], relevance: float, sort: str = SORT_RANKED) -> tuple:
    """
    Build the sort key for a posting under the given sort option.

    Keys sort ascending, so descending components are negated.
    """
    posted_at = posting.get("posted_at")
    posted_ts = posted_at.timestamp() if posted_at else float("-inf")
    posting_id = str(posting.get("posting_id"))

    if sort == SORT_NEWEST:
        return (-posted_ts, posting_id)
    if sort == SORT_SALARY:
        salary_max = posting.get("salary_max")
        return (salary_max is None, -(salary_max or 0), posting_id)
    return (-posting.get("tier_rank", 0), -relevance, -posted_ts, posting_id)


def _any_at_least(values: tuple, bound: float) -> bool:
    return any(v is not None and v >= bound for v in values)


def _any_at_most(values: tuple, bound: float) -> bool:
    return any(v is not None and v <= bound for v in values)
