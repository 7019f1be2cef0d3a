from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from duoplay.core.session_codes import normalize_session_code
from duoplay.db.repo.sessions_repo import SessionsRepo
from duoplay.game.sessions.constants import DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT
from duoplay.game.sessions.errors import SessionNotFoundError
from duoplay.game.sessions.types import SessionSnapshot

from .sessions_internal import _build_session_snapshot


async def get_session_snapshot(session: AsyncSession, *, code: str) -> SessionSnapshot:
    row = await SessionsRepo.get_by_code(session, normalize_session_code(code))
    if row is None:
        raise SessionNotFoundError
    return _build_session_snapshot(row)


async def list_active_sessions(session: AsyncSession, *, user_id: str) -> list[SessionSnapshot]:
    rows = await SessionsRepo.list_live_for_user(session, user_id=user_id)
    return [_build_session_snapshot(row) for row in rows]


async def list_session_history(
    session: AsyncSession,
    *,
    user_id: str,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> list[SessionSnapshot]:
    resolved_limit = max(1, min(MAX_HISTORY_LIMIT, int(limit)))
    rows = await SessionsRepo.list_history_for_user(
        session,
        user_id=user_id,
        limit=resolved_limit,
    )
    return [_build_session_snapshot(row) for row in rows]
