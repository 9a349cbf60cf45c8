"""
Structured Logging Utilities

Key=value context for log lines emitted by the discovery index and the
recently-viewed cache.
"""

from __future__ import annotations

import logging
from typing import Any


def format_context(context: dict[str, Any]) -> str:
    """
    Render context fields as ``key=value`` pairs joined by `` | ``.

    Fields whose value is None are skipped.

    Args:
        context: Context fields

    Returns:
        Rendered context, or an empty string when nothing is set
    """
    return " | ".join(f"{key}={value}" for key, value in context.items() if value is not None)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that attaches fixed context to every record.

    Usage:
        logger = get_structured_logger(__name__, storage_key="recentlyViewedJobs")
        logger.warning("Could not persist entries")
    """

    def __init__(self, logger: logging.Logger, **context: Any):
        super().__init__(logger, context)

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """
        Prefix the context fields onto the message.

        Args:
            msg: Log message
            kwargs: Logging keyword arguments

        Returns:
            Tuple of (formatted message, updated kwargs)
        """
        context_str = format_context(self.extra)
        if context_str:
            msg = f"[{context_str}] {msg}"
        return msg, kwargs


def get_structured_logger(name: str, **context: Any) -> StructuredLoggerAdapter:
    """
    Get a structured logger with context.

    Args:
        name: Logger name (typically __name__)
        **context: Context fields (e.g., posting_id="abc", timeout=5.0)

    Returns:
        StructuredLoggerAdapter instance
    """
    return StructuredLoggerAdapter(logging.getLogger(name), **context)


def log_with_context(logger: logging.Logger, level: int, msg: str, **context: Any) -> None:
    """
    Log a single message with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, logging.ERROR, etc.)
        msg: Log message
        **context: Additional context fields
    """
    context_str = format_context(context)
    logger.log(level, f"[{context_str}] {msg}" if context_str else msg)
