"""SQL for the posting search index.

The index is a projection of marts.postings kept current by the posting
workflow. Searches read only from this table.
"""

INDEX_COLUMNS = (
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
    "updated_at",
)

# Order of the UPSERT_INDEX_ENTRY value placeholders (search_vector follows)
UPSERT_COLUMNS = INDEX_COLUMNS[:14] + ("tier_rank",) + INDEX_COLUMNS[14:]

CREATE_POSTING_INDEX_TABLE = """
    CREATE SCHEMA IF NOT EXISTS marts;

    CREATE TABLE IF NOT EXISTS marts.posting_search_index (
        posting_id VARCHAR(64) PRIMARY KEY,
        employer_id VARCHAR(64) NOT NULL,
        title VARCHAR(200) NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        tags TEXT[] NOT NULL DEFAULT '{}',
        city VARCHAR(100),
        region VARCHAR(100),
        job_type VARCHAR(50),
        category VARCHAR(100),
        salary_min DOUBLE PRECISION,
        salary_max DOUBLE PRECISION,
        salary_currency VARCHAR(3),
        salary_visible BOOLEAN NOT NULL DEFAULT TRUE,
        tier VARCHAR(20) NOT NULL DEFAULT 'basic',
        tier_rank INTEGER NOT NULL DEFAULT 0,
        status VARCHAR(20) NOT NULL DEFAULT 'active',
        is_deleted BOOLEAN NOT NULL DEFAULT FALSE,
        posted_at TIMESTAMPTZ NOT NULL,
        expires_at TIMESTAMPTZ,
        updated_at TIMESTAMPTZ,
        search_vector TSVECTOR NOT NULL
    );

    CREATE INDEX IF NOT EXISTS posting_search_index_text_idx
        ON marts.posting_search_index USING GIN (search_vector);
    CREATE INDEX IF NOT EXISTS posting_search_index_city_status_idx
        ON marts.posting_search_index (city, status);
    CREATE INDEX IF NOT EXISTS posting_search_index_category_posted_idx
        ON marts.posting_search_index (category, posted_at DESC);
    CREATE INDEX IF NOT EXISTS posting_search_index_tier_status_idx
        ON marts.posting_search_index (tier_rank, status);
    CREATE INDEX IF NOT EXISTS posting_search_index_deleted_idx
        ON marts.posting_search_index (is_deleted);
    CREATE INDEX IF NOT EXISTS posting_search_index_employer_status_idx
        ON marts.posting_search_index (employer_id, status);
    CREATE INDEX IF NOT EXISTS posting_search_index_posted_idx
        ON marts.posting_search_index (posted_at DESC);
    CREATE INDEX IF NOT EXISTS posting_search_index_expires_idx
        ON marts.posting_search_index (expires_at);
"""

# Stale writes (older updated_at than the stored row) are ignored so a
# posting's updates are never applied out of order.
UPSERT_INDEX_ENTRY = f"""
    INSERT INTO marts.posting_search_index ({", ".join(UPSERT_COLUMNS)}, search_vector)
    VALUES (
        {", ".join(["%s"] * len(UPSERT_COLUMNS))},
        setweight(to_tsvector('simple', %s), 'A') || setweight(to_tsvector('simple', %s), 'B')
    )
    ON CONFLICT (posting_id) DO UPDATE SET
        employer_id = EXCLUDED.employer_id,
        title = EXCLUDED.title,
        description = EXCLUDED.description,
        tags = EXCLUDED.tags,
        city = EXCLUDED.city,
        region = EXCLUDED.region,
        job_type = EXCLUDED.job_type,
        category = EXCLUDED.category,
        salary_min = EXCLUDED.salary_min,
        salary_max = EXCLUDED.salary_max,
        salary_currency = EXCLUDED.salary_currency,
        salary_visible = EXCLUDED.salary_visible,
        tier = EXCLUDED.tier,
        tier_rank = EXCLUDED.tier_rank,
        status = EXCLUDED.status,
        is_deleted = EXCLUDED.is_deleted,
        posted_at = EXCLUDED.posted_at,
        expires_at = EXCLUDED.expires_at,
        updated_at = EXCLUDED.updated_at,
        search_vector = EXCLUDED.search_vector
    WHERE marts.posting_search_index.updated_at IS NULL
        OR EXCLUDED.updated_at IS NULL
        OR marts.posting_search_index.updated_at <= EXCLUDED.updated_at
"""

DELETE_INDEX_ENTRY = """
    DELETE FROM marts.posting_search_index
    WHERE posting_id = %s
"""

# Applied to every search and count, before any caller filter.
DISCOVERABLE_CLAUSE = (
    "is_deleted = FALSE AND status = 'active' AND (expires_at IS NULL OR expires_at > %s)"
)

SEARCH_INDEX_BASE = """
    SELECT {columns}, {relevance} AS relevance
    FROM marts.posting_search_index
    WHERE {where}
    ORDER BY {order_by}
    LIMIT %s OFFSET %s
"""

COUNT_INDEX_BASE = """
    SELECT COUNT(*)
    FROM marts.posting_search_index
    WHERE {where}
"""

ORDER_BY_RANKED = "tier_rank DESC, relevance DESC, posted_at DESC, posting_id ASC"
ORDER_BY_NEWEST = "posted_at DESC, posting_id ASC"
ORDER_BY_SALARY = "salary_max DESC NULLS LAST, posting_id ASC"
