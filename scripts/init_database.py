#!/usr/bin/env python3
"""
Create the marketplace schema and keep the posting search index current.

Creates marts.users, marts.postings and marts.posting_search_index (with its
full-text and ranking indexes). Optionally expires past-due postings and
rebuilds the search index from marts.postings.

Usage:
    python scripts/init_database.py [--expire] [--reindex] [--verbose]
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root))

from services.auth.queries import CREATE_USERS_TABLE  # noqa: E402
from services.discovery import DiscoveryIndex, PostgreSQLPostingIndexStore  # noqa: E402
from services.jobs import PostingService  # noqa: E402
from services.jobs.queries import CREATE_POSTINGS_TABLE  # noqa: E402
from services.shared import PostgreSQLDatabase, build_db_connection_string  # noqa: E402

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def load_environment() -> None:
    env_name = os.getenv("ENVIRONMENT", "development")
    env_file = repo_root / f".env.{env_name}"
    if env_file.exists():
        load_dotenv(env_file)
    elif (repo_root / ".env").exists():
        load_dotenv(repo_root / ".env")


def main() -> int:
    parser = argparse.ArgumentParser(description="Initialize the job marketplace database")
    parser.add_argument("--expire", action="store_true", help="Expire past-due postings")
    parser.add_argument("--reindex", action="store_true", help="Rebuild the search index")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    load_environment()
    database = PostgreSQLDatabase(connection_string=build_db_connection_string())
    store = PostgreSQLPostingIndexStore(database=database)

    try:
        with database.get_cursor() as cur:
            cur.execute(CREATE_USERS_TABLE)
            cur.execute(CREATE_POSTINGS_TABLE)
        store.ensure_schema()
        logger.info("Schema is up to date")

        posting_service = PostingService(database=database, discovery_index=DiscoveryIndex(store))
        if args.expire:
            expired = posting_service.expire_due_postings()
            logger.info(f"Expired {expired} posting(s)")
        if args.reindex:
            indexed = posting_service.rebuild_index()
            logger.info(f"Indexed {indexed} posting(s)")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=args.verbose)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
