"""
Retry logic with exponential backoff for SQLite lock contention

Another process holding the write lock on the event log surfaces as
sqlite3.OperationalError ("database is locked"); these waits are short
and retrying is safe because appends are all-or-nothing.
"""

import sqlite3
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from simple_dao.kernel.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    logger.warning(
        "SQLite lock detected, retrying",
        attempt=retry_state.attempt_number,
        exception=str(retry_state.outcome.exception()) if retry_state.outcome else None,
    )


def retry_on_sqlite_lock(
    max_attempts: int = 3,
    min_wait_ms: int = 50,
    max_wait_ms: int = 1000,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Retry decorator for sqlite3.OperationalError

    Args:
        max_attempts: Attempts before the last error is re-raised
        min_wait_ms: First backoff wait in milliseconds
        max_wait_ms: Ceiling for backoff waits in milliseconds

    Example:
        @retry_on_sqlite_lock()
        def _insert(conn, events):
            conn.execute(...)
    """
    return retry(
        retry=retry_if_exception_type(sqlite3.OperationalError),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=min_wait_ms / 1000.0,
            max=max_wait_ms / 1000.0,
        ),
        before_sleep=_log_retry,
        reraise=True,
    )
