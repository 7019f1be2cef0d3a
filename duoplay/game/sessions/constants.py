from __future__ import annotations

from enum import StrEnum


class SessionStatus(StrEnum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


LIVE_STATUSES = frozenset({SessionStatus.WAITING, SessionStatus.ACTIVE})
TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.ABANDONED})

MAX_CHANGES = 3
MAX_BONUS_CHANGES = 3

MIN_CHALLENGE_COUNT = 5
FREE_MAX_CHALLENGE_COUNT = 15
PREMIUM_MAX_CHALLENGE_COUNT = 50

DEFAULT_HISTORY_LIMIT = 10
MAX_HISTORY_LIMIT = 50


def max_challenge_count(is_premium: bool) -> int:
    return PREMIUM_MAX_CHALLENGE_COUNT if is_premium else FREE_MAX_CHALLENGE_COUNT


def is_terminal_transition(before: str | None, after: str | None) -> bool:
    return before in LIVE_STATUSES and after in TERMINAL_STATUSES
