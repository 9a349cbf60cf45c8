"""Posting lifecycle: create, update, soft-delete and expire job postings."""

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from ..discovery import DiscoveryIndex
from ..discovery.models import PageRequest, parse_timestamp
from ..shared.database import Database
from ..shared.structured_logging import log_with_context
from .queries import (
    COUNT_EMPLOYER_POSTINGS_BASE,
    EXPIRE_DUE_POSTINGS,
    GET_ALL_POSTINGS,
    GET_POSTING_BY_ID,
    INCREMENT_VIEW_COUNT,
    INSERT_POSTING,
    LIST_EMPLOYER_POSTINGS_BASE,
    SOFT_DELETE_POSTING,
    UPDATE_POSTING_BASE,
)

logger = logging.getLogger(__name__)

POSTING_LIFETIME = timedelta(days=30)

VALID_JOB_TYPES = ("full-time", "part-time", "contract", "internship")
VALID_STATUSES = ("active", "paused", "closed", "draft", "expired")
# Statuses an owner may switch a live posting between
OWNER_STATUSES = ("active", "paused", "closed")
VALID_TIERS = ("basic", "bronze", "silver", "gold", "premium")
VALID_CURRENCIES = ("EUR", "ALL")

REQUIRED_FIELDS = ("title", "description", "city", "job_type", "category")

# Fields an employer may change after publishing
UPDATABLE_FIELDS = (
    "title",
    "description",
    "tags",
    "city",
    "region",
    "job_type",
    "category",
    "salary_min",
    "salary_max",
    "salary_currency",
    "salary_visible",
    "tier",
    "status",
    "expires_at",
)

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 5000
MAX_TAG_LENGTH = 50

EMPLOYER_SORT_COLUMNS = ("posted_at", "updated_at", "expires_at", "title", "view_count")


class PostingService:
    """Service for posting writes. Every change is pushed to the discovery index."""

    def __init__(
        self,
        database: Database,
        discovery_index: DiscoveryIndex,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the posting service.

        Args:
            database: Database connection interface
            discovery_index: Index notified after every write
            clock: Callable returning the current aware datetime
        """
        if not database:
            raise ValueError("Database is required")
        if not discovery_index:
            raise ValueError("DiscoveryIndex is required")
        self.db = database
        self.discovery_index = discovery_index
        self._clock = clock or (lambda: datetime.now(UTC))

    def create_posting(self, employer_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Publish a new posting for an employer.

        The posting is active immediately and expires POSTING_LIFETIME after
        it is posted unless ``expires_at`` is given.

        Args:
            employer_id: Owning employer's user ID
            data: Posting fields (title, description, city, job_type, category, ...)

        Returns:
            The stored posting

        Raises:
            ValueError: If validation fails
        """
        if not employer_id:
            raise ValueError("Employer ID is required")
        missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        fields = self._validate_fields({**{"tier": "basic", "salary_currency": "EUR"}, **data})
        now = self._clock()
        posting_id = uuid.uuid4().hex
        expires_at = fields.get("expires_at") or now + POSTING_LIFETIME

        params = (
            posting_id,
            str(employer_id),
            fields["title"],
            fields["description"],
            fields.get("tags", []),
            fields["city"],
            fields.get("region"),
            fields["job_type"],
            fields["category"],
            fields.get("salary_min"),
            fields.get("salary_max"),
            fields["salary_currency"],
            fields.get("salary_visible", True),
            fields["tier"],
            "active",
            False,
            now,
            expires_at,
            now,
            now,
        )
        posting = self._write_one(INSERT_POSTING, params)
        if not posting:
            raise ValueError("Failed to create posting")

        logger.info(f"Created posting {posting_id} for employer {employer_id}")
        self._sync_index(posting)
        return posting

    def get_posting(self, posting_id: str) -> dict[str, Any] | None:
        """Get a posting by ID (including soft-deleted ones), or None."""
        with self.db.get_cursor() as cur:
            cur.execute(GET_POSTING_BY_ID, (posting_id,))
            columns = [desc[0] for desc in cur.description]
            row = cur.fetchone()
        return _row_to_posting(columns, row) if row else None

    def update_posting(self, posting_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        """Apply employer edits to a posting and re-index it.

        Args:
            posting_id: Posting to update
            changes: Subset of UPDATABLE_FIELDS

        Returns:
            The updated posting, or None if it does not exist

        Raises:
            ValueError: If no updatable field is given or validation fails
        """
        unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(unknown)}")
        if not changes:
            raise ValueError("No fields to update")

        fields = self._validate_fields(changes)
        fields["updated_at"] = self._clock()

        # Column names come from UPDATABLE_FIELDS, never from the request
        assignments = ", ".join(f"{column} = %s" for column in fields)
        query = UPDATE_POSTING_BASE.format(assignments=assignments)
        posting = self._write_one(query, (*fields.values(), posting_id))
        if not posting:
            return None

        logger.info(f"Updated posting {posting_id}: {', '.join(sorted(changes))}")
        self._sync_index(posting)
        return posting

    def soft_delete(self, posting_id: str) -> dict[str, Any] | None:
        """Mark a posting deleted and closed. The row is kept.

        Returns:
            The updated posting, or None if it does not exist
        """
        posting = self._write_one(SOFT_DELETE_POSTING, (self._clock(), posting_id))
        if not posting:
            return None

        logger.info(f"Soft-deleted posting {posting_id}")
        self._sync_index(posting)
        return posting

    def set_status(self, posting_id: str, status: str) -> dict[str, Any] | None:
        """Pause, resume or close a posting.

        Only the owner-facing statuses in OWNER_STATUSES are accepted; draft
        and expired are managed by the platform.

        Returns:
            The updated posting, or None if it does not exist

        Raises:
            ValueError: If status is not one of OWNER_STATUSES
        """
        if status not in OWNER_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(OWNER_STATUSES)}")
        return self.update_posting(posting_id, {"status": status})

    def list_employer_postings(
        self,
        employer_id: str,
        status: str | None = None,
        page: PageRequest | None = None,
        sort_by: str = "posted_at",
        sort_order: str = "desc",
    ) -> tuple[list[dict[str, Any]], int]:
        """List an employer's own postings, including paused and expired ones.

        Soft-deleted postings are never listed.

        Args:
            employer_id: Owning employer's user ID
            status: Optional status filter
            page: Offset/limit window (default first 10)
            sort_by: One of EMPLOYER_SORT_COLUMNS
            sort_order: 'asc' or 'desc'

        Returns:
            Tuple of (postings on the page, total matching postings)

        Raises:
            ValueError: If status, sort_by or sort_order is invalid
        """
        if not employer_id:
            raise ValueError("Employer ID is required")
        if status and status not in VALID_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(VALID_STATUSES)}")
        if sort_by not in EMPLOYER_SORT_COLUMNS:
            raise ValueError(f"Sort field must be one of: {', '.join(EMPLOYER_SORT_COLUMNS)}")
        if sort_order not in ("asc", "desc"):
            raise ValueError("Sort order must be 'asc' or 'desc'")

        page = page or PageRequest()
        status_clause = "AND status = %s" if status else ""
        filter_params: tuple = (str(employer_id), status) if status else (str(employer_id),)
        order_by = f"{sort_by} {sort_order.upper()}, posting_id ASC"

        with self.db.get_cursor() as cur:
            cur.execute(
                LIST_EMPLOYER_POSTINGS_BASE.format(status_clause=status_clause, order_by=order_by),
                (*filter_params, page.limit, page.offset),
            )
            columns = [desc[0] for desc in cur.description]
            postings = [_row_to_posting(columns, row) for row in cur.fetchall()]

            cur.execute(COUNT_EMPLOYER_POSTINGS_BASE.format(status_clause=status_clause), filter_params)
            total = cur.fetchone()[0]

        return postings, total

    def increment_view_count(self, posting_id: str) -> int | None:
        """Count a view of a live posting.

        Returns:
            The new view count, or None if the posting does not exist or is deleted
        """
        with self.db.get_cursor() as cur:
            cur.execute(INCREMENT_VIEW_COUNT, (posting_id,))
            row = cur.fetchone()
        return row[0] if row else None

    def expire_due_postings(self, now: datetime | None = None) -> int:
        """Mark active postings past their expiry as expired.

        Args:
            now: Reference time (defaults to the service clock)

        Returns:
            Number of postings expired
        """
        now = now or self._clock()
        with self.db.get_cursor() as cur:
            cur.execute(EXPIRE_DUE_POSTINGS, (now, now))
            columns = [desc[0] for desc in cur.description]
            postings = [_row_to_posting(columns, row) for row in cur.fetchall()]

        for posting in postings:
            self._sync_index(posting)

        if postings:
            logger.info(f"Expired {len(postings)} posting(s)")
        return len(postings)

    def rebuild_index(self) -> int:
        """Push every stored posting to the discovery index.

        Returns:
            Number of postings indexed
        """
        with self.db.get_cursor() as cur:
            cur.execute(GET_ALL_POSTINGS)
            columns = [desc[0] for desc in cur.description]
            postings = [_row_to_posting(columns, row) for row in cur.fetchall()]

        for posting in postings:
            self._sync_index(posting)

        logger.info(f"Rebuilt discovery index from {len(postings)} posting(s)")
        return len(postings)

    def _sync_index(self, posting: dict[str, Any]) -> None:
        if not self.discovery_index.upsert_index_entry(posting):
            log_with_context(
                logger,
                logging.WARNING,
                "Index kept a newer version of the posting",
                posting_id=posting.get("posting_id"),
                updated_at=posting.get("updated_at"),
            )

    def _write_one(self, query: str, params: tuple) -> dict[str, Any] | None:
        try:
            with self.db.get_cursor() as cur:
                cur.execute(query, params)
                columns = [desc[0] for desc in cur.description]
                row = cur.fetchone()
        except Exception as e:
            logger.error(f"Error writing posting: {e}", exc_info=True)
            raise
        return _row_to_posting(columns, row) if row else None

    def _validate_fields(self, data: dict[str, Any]) -> dict[str, Any]:
        """Validate and normalize posting fields that are present in data."""
        fields: dict[str, Any] = {}

        for field in ("title", "description", "city", "region", "category"):
            if field in data:
                value = data[field]
                fields[field] = value.strip() if isinstance(value, str) else value

        if "title" in fields and len(fields["title"] or "") > MAX_TITLE_LENGTH:
            raise ValueError(f"Title must be at most {MAX_TITLE_LENGTH} characters")
        if "description" in fields and len(fields["description"] or "") > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters")
        for field in REQUIRED_FIELDS:
            if field in data and not data[field]:
                raise ValueError(f"Field '{field}' cannot be empty")

        if "job_type" in data:
            if data["job_type"] not in VALID_JOB_TYPES:
                raise ValueError(f"Job type must be one of: {', '.join(VALID_JOB_TYPES)}")
            fields["job_type"] = data["job_type"]

        if "tags" in data:
            tags = data["tags"] or []
            if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
                raise ValueError("Tags must be a list of strings")
            if any(len(t) > MAX_TAG_LENGTH for t in tags):
                raise ValueError(f"Tags must be at most {MAX_TAG_LENGTH} characters")
            fields["tags"] = [t.strip() for t in tags if t.strip()]

        for field in ("salary_min", "salary_max"):
            if field in data:
                value = data[field]
                if value is not None:
                    value = float(value)
                    if value < 0:
                        raise ValueError("Salary must be non-negative")
                fields[field] = value
        salary_min, salary_max = fields.get("salary_min"), fields.get("salary_max")
        if salary_min is not None and salary_max is not None and salary_min > salary_max:
            raise ValueError("Minimum salary cannot exceed maximum salary")

        if "salary_currency" in data:
            if data["salary_currency"] not in VALID_CURRENCIES:
                raise ValueError(f"Currency must be one of: {', '.join(VALID_CURRENCIES)}")
            fields["salary_currency"] = data["salary_currency"]
        if "salary_visible" in data:
            fields["salary_visible"] = bool(data["salary_visible"])

        if "tier" in data:
            if data["tier"] not in VALID_TIERS:
                raise ValueError(f"Tier must be one of: {', '.join(VALID_TIERS)}")
            fields["tier"] = data["tier"]
        if "status" in data:
            if data["status"] not in VALID_STATUSES:
                raise ValueError(f"Status must be one of: {', '.join(VALID_STATUSES)}")
            fields["status"] = data["status"]

        if "expires_at" in data:
            fields["expires_at"] = parse_timestamp(data["expires_at"])

        return fields


def _row_to_posting(columns: list[str], row: tuple) -> dict[str, Any]:
    posting = dict(zip(columns, row))
    posting["tags"] = list(posting.get("tags") or [])
    return posting
