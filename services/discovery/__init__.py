"""
Discovery Service

Ranked, filtered search over active job postings.
"""

from .discovery_index import DiscoveryIndex
from .errors import DiscoveryError, DiscoveryTimeoutError, StoreUnavailableError
from .index_store import InMemoryPostingIndexStore, PostgreSQLPostingIndexStore, PostingIndexStore
from .models import (
    MAX_PAGE_SIZE,
    SORT_NEWEST,
    SORT_OPTIONS,
    SORT_RANKED,
    SORT_SALARY,
    PageRequest,
    SearchFilter,
)

__all__ = [
    "DiscoveryIndex",
    "DiscoveryError",
    "DiscoveryTimeoutError",
    "StoreUnavailableError",
    "PostingIndexStore",
    "InMemoryPostingIndexStore",
    "PostgreSQLPostingIndexStore",
    "PageRequest",
    "SearchFilter",
    "MAX_PAGE_SIZE",
    "SORT_OPTIONS",
    "SORT_RANKED",
    "SORT_NEWEST",
    "SORT_SALARY",
]
