"""Job posting storage and lifecycle."""

from .posting_service import (
    OWNER_STATUSES,
    POSTING_LIFETIME,
    UPDATABLE_FIELDS,
    VALID_JOB_TYPES,
    PostingService,
)

__all__ = [
    "OWNER_STATUSES",
    "POSTING_LIFETIME",
    "UPDATABLE_FIELDS",
    "VALID_JOB_TYPES",
    "PostingService",
]
