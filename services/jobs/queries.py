"""SQL queries for posting storage."""

POSTING_COLUMNS = (
    "posting_id",
    "employer_id",
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
    "is_deleted",
    "posted_at",
    "expires_at",
    "view_count",
    "created_at",
    "updated_at",
)

_RETURNING = ", ".join(POSTING_COLUMNS)

CREATE_POSTINGS_TABLE = """
    CREATE SCHEMA IF NOT EXISTS marts;

    CREATE TABLE IF NOT EXISTS marts.postings (
        posting_id VARCHAR(64) PRIMARY KEY,
        employer_id VARCHAR(64) NOT NULL,
        title VARCHAR(200) NOT NULL,
        description TEXT NOT NULL,
        tags TEXT[] NOT NULL DEFAULT '{}',
        city VARCHAR(100) NOT NULL,
        region VARCHAR(100),
        job_type VARCHAR(50) NOT NULL,
        category VARCHAR(100) NOT NULL,
        salary_min DOUBLE PRECISION,
        salary_max DOUBLE PRECISION,
        salary_currency VARCHAR(3) NOT NULL DEFAULT 'EUR',
        salary_visible BOOLEAN NOT NULL DEFAULT TRUE,
        tier VARCHAR(20) NOT NULL DEFAULT 'basic',
        status VARCHAR(20) NOT NULL DEFAULT 'active',
        is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
        posted_at TIMESTAMPTZ NOT NULL,
        expires_at TIMESTAMPTZ,
        view_count INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    );

    CREATE INDEX IF NOT EXISTS postings_employer_status_idx
        ON marts.postings (employer_id, status);
    ALTER TABLE marts.postings
        ADD COLUMN IF NOT EXISTS view_count INTEGER NOT NULL DEFAULT 0;

    CREATE INDEX IF NOT EXISTS postings_expires_idx
        ON marts.postings (expires_at);
"""

INSERT_POSTING = f"""
    INSERT INTO marts.postings (
        posting_id, employer_id, title, description, tags, city, region,
        job_type, category, salary_min, salary_max, salary_currency,
        salary_visible, tier, status, is_deleted, posted_at, expires_at,
        created_at, updated_at
    ) VALUES (
        %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s
    )
    RETURNING {_RETURNING}
"""

GET_POSTING_BY_ID = f"""
    SELECT {_RETURNING}
    FROM marts.postings
    WHERE posting_id = %s
"""

# SET clause is built from validated column names in PostingService
UPDATE_POSTING_BASE = f"""
    UPDATE marts.postings
    SET {{assignments}}
    WHERE posting_id = %s
    RETURNING {_RETURNING}
"""

SOFT_DELETE_POSTING = f"""
    UPDATE marts.postings
    SET is_deleted = TRUE, status = 'closed', updated_at = %s
    WHERE posting_id = %s
    RETURNING {_RETURNING}
"""

EXPIRE_DUE_POSTINGS = f"""
    UPDATE marts.postings
    SET status = 'expired', updated_at = %s
    WHERE status = 'active'
      AND is_deleted = FALSE
      AND expires_at IS NOT NULL
      AND expires_at <= %s
    RETURNING {_RETURNING}
"""

GET_ALL_POSTINGS = f"""
    SELECT {_RETURNING}
    FROM marts.postings
    ORDER BY posting_id
"""

# Filter and ORDER BY clauses are built from whitelisted values in PostingService
LIST_EMPLOYER_POSTINGS_BASE = f"""
    SELECT {_RETURNING}
    FROM marts.postings
    WHERE employer_id = %s
      AND is_deleted = FALSE
      {{status_clause}}
    ORDER BY {{order_by}}
    LIMIT %s OFFSET %s
"""

COUNT_EMPLOYER_POSTINGS_BASE = """
    SELECT COUNT(*)
    FROM marts.postings
    WHERE employer_id = %s
      AND is_deleted = FALSE
      {status_clause}
"""

# Views are not edits: updated_at is left alone so the index entry stays current
INCREMENT_VIEW_COUNT = """
    UPDATE marts.postings
    SET view_count = view_count + 1
    WHERE posting_id = %s
      AND is_deleted = FALSE
    RETURNING view_count
"""
