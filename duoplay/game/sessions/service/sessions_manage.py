from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from duoplay.core.config import get_settings
from duoplay.core.session_codes import normalize_session_code
from duoplay.db.repo.messages_repo import MessagesRepo
from duoplay.db.repo.sessions_repo import SessionsRepo
from duoplay.game.sessions.constants import LIVE_STATUSES, TERMINAL_STATUSES, SessionStatus
from duoplay.game.sessions.errors import (
    OnlyCreatorCanDeleteError,
    SessionInProgressError,
    SessionNotFoundError,
)
from duoplay.game.sessions.types import SessionSnapshot, SessionStatusChange

from .constants import STATUS_CHANGES_INFO_KEY
from .sessions_internal import _build_session_snapshot, _require_member, _transition_status

logger = structlog.get_logger(__name__)


async def abandon_session(
    session: AsyncSession,
    *,
    code: str,
    user_id: str,
    now_utc: datetime,
) -> SessionSnapshot:
    row = await SessionsRepo.get_by_code_for_update(session, normalize_session_code(code))
    if row is None:
        raise SessionNotFoundError
    role = _require_member(row, user_id)
    if row.status in TERMINAL_STATUSES:
        return _build_session_snapshot(row)

    _transition_status(session, row, status=SessionStatus.ABANDONED, now_utc=now_utc)
    logger.info("session_abandoned", session_code=row.code, role=role.value)
    return _build_session_snapshot(row)


async def delete_session(
    session: AsyncSession,
    *,
    code: str,
    user_id: str,
) -> None:
    row = await SessionsRepo.get_by_code_for_update(session, normalize_session_code(code))
    if row is None:
        raise SessionNotFoundError
    if row.creator_id != user_id:
        raise OnlyCreatorCanDeleteError
    if row.status == SessionStatus.ACTIVE:
        raise SessionInProgressError

    batch_size = max(1, int(get_settings().media_cleanup_batch_size))
    while await MessagesRepo.delete_for_session_batch(
        session, session_code=row.code, limit=batch_size
    ):
        pass
    if row.status in LIVE_STATUSES:
        # Blobs under the session prefix still need the terminal cleanup.
        session.info.setdefault(STATUS_CHANGES_INFO_KEY, []).append(
            SessionStatusChange(
                code=row.code,
                before=row.status,
                after=SessionStatus.ABANDONED.value,
            )
        )
    await SessionsRepo.delete_by_code(session, row.code)
    logger.info("session_deleted", session_code=row.code, user_id=user_id)
