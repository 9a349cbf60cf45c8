"""
Shared infrastructure for services.

This package contains shared building blocks used across multiple services,
such as the database abstraction and structured logging helpers.
"""

from .database import Database, PostgreSQLDatabase, build_db_connection_string
from .structured_logging import get_structured_logger, log_with_context

__all__ = [
    "Database",
    "PostgreSQLDatabase",
    "build_db_connection_string",
    "get_structured_logger",
    "log_with_context",
]
