from __future__ import annotations

import random

from sqlalchemy.exc import DBAPIError

RETRY_JITTER_RATIO = 0.2

# serialization_failure, deadlock_detected, lock_not_available and connection class 08.
TRANSIENT_SQLSTATES = frozenset(
    {
        "40001",
        "40P01",
        "55P03",
        "57P01",
        "08000",
        "08001",
        "08003",
        "08004",
        "08006",
    }
)


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    for attribute in ("sqlstate", "pgcode"):
        value = getattr(orig, attribute, None)
        if value:
            return str(value)
    return None


def is_transient_db_error(exc: BaseException) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated:
        return True
    return _sqlstate(exc) in TRANSIENT_SQLSTATES


def retry_backoff_seconds(
    *,
    next_retry_attempt: int,
    backoff_max_seconds: int,
) -> int:
    safe_retry_attempt = max(1, int(next_retry_attempt))
    safe_backoff_max_seconds = max(1, int(backoff_max_seconds))

    base_delay = min(
        safe_backoff_max_seconds,
        2 ** (safe_retry_attempt - 1),
    )
    max_jitter = max(0, int(base_delay * RETRY_JITTER_RATIO))
    jitter = random.randint(0, max_jitter) if max_jitter > 0 else 0
    return min(safe_backoff_max_seconds, base_delay + jitter)
