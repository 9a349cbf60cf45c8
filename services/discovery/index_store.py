"""Storage backends for the posting search index.

This abstraction lets the discovery index run against PostgreSQL in
production and an in-process store in tests or single-process deployments,
without changing the ranking contract.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any

import psycopg2
from psycopg2 import errors as pg_errors

from ..shared.database import Database
from .errors import DiscoveryTimeoutError, StoreUnavailableError
from .models import SORT_NEWEST, SORT_SALARY, PageRequest, SearchFilter
from .queries import (
    COUNT_INDEX_BASE,
    CREATE_POSTING_INDEX_TABLE,
    DELETE_INDEX_ENTRY,
    DISCOVERABLE_CLAUSE,
    INDEX_COLUMNS,
    ORDER_BY_NEWEST,
    ORDER_BY_RANKED,
    ORDER_BY_SALARY,
    SEARCH_INDEX_BASE,
    UPSERT_COLUMNS,
    UPSERT_INDEX_ENTRY,
)
from .ranking import is_discoverable, matches_filter, relevance_score, sort_key, tokenize

logger = logging.getLogger(__name__)


class PostingIndexStore(ABC):
    """Abstract base class for posting index storage.

    Entries handed to upsert() are already normalized by DiscoveryIndex and
    carry a numeric ``tier_rank``.
    """

    @abstractmethod
    def upsert(self, entry: dict[str, Any]) -> bool:
        """Insert or replace an index entry.

        Returns:
            True if the entry was written, False if it was older than the stored one
        """
        ...

    @abstractmethod
    def remove(self, posting_id: str) -> bool:
        """Remove an index entry.

        Returns:
            True if an entry was removed, False if none existed
        """
        ...

    @abstractmethod
    def search(
        self,
        filters: SearchFilter,
        sort: str,
        page: PageRequest,
        now: datetime,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """Return one page of discoverable postings matching filters, in sort order.

        Raises:
            DiscoveryTimeoutError: If the timeout elapses
            StoreUnavailableError: If the store cannot be reached
        """
        ...

    @abstractmethod
    def count(self, filters: SearchFilter, now: datetime, timeout: float | None = None) -> int:
        """Count discoverable postings matching filters."""
        ...


class InMemoryPostingIndexStore(PostingIndexStore):
    """Process-local index store.

    Writes to one posting are serialized by a lock, matching the per-document
    atomicity the PostgreSQL store gets from the database.
    """

    def __init__(self):
        self._entries: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def upsert(self, entry: dict[str, Any]) -> bool:
        posting_id = entry["posting_id"]
        with self._lock:
            current = self._entries.get(posting_id)
            if current is not None and _is_stale(entry, current):
                logger.debug(f"Ignoring stale index update for posting {posting_id}")
                return False
            self._entries[posting_id] = copy.deepcopy(entry)
            return True

    def remove(self, posting_id: str) -> bool:
        with self._lock:
            return self._entries.pop(posting_id, None) is not None

    def search(
        self,
        filters: SearchFilter,
        sort: str,
        page: PageRequest,
        now: datetime,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        terms = tokenize(filters.text)
        scored = [
            (entry, relevance_score(entry, terms))
            for entry in self._matching(filters, terms, now, timeout)
        ]
        scored.sort(key=lambda pair: sort_key(pair[0], pair[1], sort))

        window = scored[page.offset : page.offset + page.limit]
        return [_public_entry(entry) for entry, _ in window]

    def count(self, filters: SearchFilter, now: datetime, timeout: float | None = None) -> int:
        return len(self._matching(filters, tokenize(filters.text), now, timeout))

    def _matching(
        self, filters: SearchFilter, terms: list[str], now: datetime, timeout: float | None
    ) -> list[dict[str, Any]]:
        deadline = time.monotonic() + timeout if timeout is not None else None
        with self._lock:
            snapshot = list(self._entries.values())

        matched = []
        for entry in snapshot:
            if deadline is not None and time.monotonic() > deadline:
                raise DiscoveryTimeoutError(f"Search exceeded timeout of {timeout}s")
            if is_discoverable(entry, now) and matches_filter(entry, filters, terms):
                matched.append(entry)
        return matched


class PostgreSQLPostingIndexStore(PostingIndexStore):
    """PostgreSQL implementation backed by marts.posting_search_index.

    Text relevance uses ts_rank over a weighted tsvector (title weight A,
    tags weight B) with query terms OR-ed together.
    """

    def __init__(self, database: Database):
        """Initialize the store.

        Args:
            database: Database connection interface

        Raises:
            ValueError: If database is None
        """
        if not database:
            raise ValueError("Database is required")
        self.db = database

    def ensure_schema(self) -> None:
        """Create the index table and its secondary indexes if missing."""
        with self._cursor(None) as cur:
            cur.execute(CREATE_POSTING_INDEX_TABLE)
        logger.info("Ensured marts.posting_search_index schema")

    def upsert(self, entry: dict[str, Any]) -> bool:
        params = tuple(entry.get(column) for column in UPSERT_COLUMNS)
        params += (entry.get("title") or "", " ".join(entry.get("tags") or []))

        with self._cursor(None) as cur:
            cur.execute(UPSERT_INDEX_ENTRY, params)
            applied = cur.rowcount > 0

        if not applied:
            logger.debug(f"Ignoring stale index update for posting {entry['posting_id']}")
        return applied

    def remove(self, posting_id: str) -> bool:
        with self._cursor(None) as cur:
            cur.execute(DELETE_INDEX_ENTRY, (posting_id,))
            return cur.rowcount > 0

    def search(
        self,
        filters: SearchFilter,
        sort: str,
        page: PageRequest,
        now: datetime,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        terms = tokenize(filters.text)
        where, where_params = self._build_where(filters, terms, now)

        if terms:
            relevance = f"ts_rank(search_vector, {_tsquery_sql(terms)})"
            relevance_params = list(terms)
        else:
            relevance = "0"
            relevance_params = []

        if sort == SORT_NEWEST:
            order_by = ORDER_BY_NEWEST
        elif sort == SORT_SALARY:
            order_by = ORDER_BY_SALARY
        else:
            order_by = ORDER_BY_RANKED

        query = SEARCH_INDEX_BASE.format(
            columns=", ".join(INDEX_COLUMNS),
            relevance=relevance,
            where=where,
            order_by=order_by,
        )
        params = relevance_params + where_params + [page.limit, page.offset]

        with self._cursor(timeout) as cur:
            cur.execute(query, params)
            columns = [desc[0] for desc in cur.description]
            rows = [dict(zip(columns, row)) for row in cur.fetchall()]

        for row in rows:
            row.pop("relevance", None)
            row["tags"] = list(row.get("tags") or [])
        return rows

    def count(self, filters: SearchFilter, now: datetime, timeout: float | None = None) -> int:
        where, params = self._build_where(filters, tokenize(filters.text), now)
        with self._cursor(timeout) as cur:
            cur.execute(COUNT_INDEX_BASE.format(where=where), params)
            result = cur.fetchone()
        return result[0] if result else 0

    @staticmethod
    def _build_where(
        filters: SearchFilter, terms: list[str], now: datetime
    ) -> tuple[str, list[Any]]:
        clauses = [DISCOVERABLE_CLAUSE]
        params: list[Any] = [now]

        if terms:
            clauses.append(f"search_vector @@ ({_tsquery_sql(terms)})")
            params.extend(terms)

        for field in ("city", "status", "category", "job_type", "employer_id"):
            value = getattr(filters, field)
            if value is not None:
                clauses.append(f"{field} = %s")
                params.append(value)

        if filters.posted_after is not None:
            clauses.append("posted_at >= %s")
            params.append(filters.posted_after)
        if filters.posted_before is not None:
            clauses.append("posted_at <= %s")
            params.append(filters.posted_before)
        if filters.min_salary is not None:
            clauses.append("(salary_min >= %s OR salary_max >= %s)")
            params.extend([filters.min_salary, filters.min_salary])
        if filters.max_salary is not None:
            clauses.append("(salary_min <= %s OR salary_max <= %s)")
            params.extend([filters.max_salary, filters.max_salary])

        return " AND ".join(clauses), params

    @contextmanager
    def _cursor(self, timeout: float | None):
        """Yield a cursor, translating driver failures into discovery errors."""
        timeout_ms = int(timeout * 1000) if timeout is not None else None
        try:
            with self.db.get_cursor(statement_timeout_ms=timeout_ms) as cur:
                yield cur
        except pg_errors.QueryCanceled as e:
            raise DiscoveryTimeoutError(f"Search exceeded timeout of {timeout}s") from e
        except psycopg2.OperationalError as e:
            logger.error(f"Posting index store unavailable: {type(e).__name__}")
            raise StoreUnavailableError("Posting index store is unavailable") from e


def _tsquery_sql(terms: list[str]) -> str:
    return " || ".join("plainto_tsquery('simple', %s)" for _ in terms)


def _is_stale(incoming: dict[str, Any], current: dict[str, Any]) -> bool:
    incoming_at = incoming.get("updated_at")
    current_at = current.get("updated_at")
    return incoming_at is not None and current_at is not None and incoming_at < current_at


def _public_entry(entry: dict[str, Any]) -> dict[str, Any]:
    return {key: copy.deepcopy(entry.get(key)) for key in INDEX_COLUMNS}
