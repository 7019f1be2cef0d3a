from __future__ import annotations

from .constants import SESSION_CODE_MAX_ATTEMPTS, SESSION_TTL_SECONDS
from .sessions_changes import get_change_options, grant_bonus_change, swap_challenge
from .sessions_create import create_session
from .sessions_internal import (
    _build_session_snapshot,
    _change_budget,
    _decode_challenges,
    _is_expired,
    _resolve_role,
    _transition_status,
    pop_push_messages,
    pop_status_changes,
)
from .sessions_join import join_session
from .sessions_manage import abandon_session, delete_session
from .sessions_progress import complete_challenge
from .sessions_queries import get_session_snapshot, list_active_sessions, list_session_history


class GameSessionService:
    _resolve_role = staticmethod(_resolve_role)
    _is_expired = staticmethod(_is_expired)
    _decode_challenges = staticmethod(_decode_challenges)
    _change_budget = staticmethod(_change_budget)
    _transition_status = staticmethod(_transition_status)
    _build_session_snapshot = staticmethod(_build_session_snapshot)
    create_session = staticmethod(create_session)
    join_session = staticmethod(join_session)
    complete_challenge = staticmethod(complete_challenge)
    get_change_options = staticmethod(get_change_options)
    swap_challenge = staticmethod(swap_challenge)
    grant_bonus_change = staticmethod(grant_bonus_change)
    abandon_session = staticmethod(abandon_session)
    delete_session = staticmethod(delete_session)
    get_session_snapshot = staticmethod(get_session_snapshot)
    list_active_sessions = staticmethod(list_active_sessions)
    list_session_history = staticmethod(list_session_history)
    pop_status_changes = staticmethod(pop_status_changes)
    pop_push_messages = staticmethod(pop_push_messages)


__all__ = [
    "SESSION_CODE_MAX_ATTEMPTS",
    "SESSION_TTL_SECONDS",
    "GameSessionService",
]
