from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from duoplay.core.session_codes import normalize_session_code
from duoplay.db.repo.sessions_repo import SessionsRepo
from duoplay.game.challenges.types import Gender
from duoplay.game.sessions.constants import SessionStatus
from duoplay.game.sessions.errors import (
    CannotJoinOwnSessionError,
    SessionExpiredError,
    SessionFullError,
    SessionNotFoundError,
)
from duoplay.game.sessions.types import SessionSnapshot

from .sessions_internal import (
    _build_session_snapshot,
    _is_expired,
    _parse_gender,
    _queue_push,
    _raise_for_not_waiting,
    _transition_status,
)

logger = structlog.get_logger(__name__)


async def join_session(
    session: AsyncSession,
    *,
    code: str,
    partner_id: str,
    partner_gender: Gender | str,
    now_utc: datetime,
    partner_push_token: str | None = None,
) -> SessionSnapshot:
    gender = _parse_gender(partner_gender, field="partner_gender")
    normalized_code = normalize_session_code(code)
    row = await SessionsRepo.get_by_code_for_update(session, normalized_code)
    if row is None:
        raise SessionNotFoundError
    if row.creator_id == partner_id:
        raise CannotJoinOwnSessionError
    if row.status != SessionStatus.WAITING:
        _raise_for_not_waiting(row.status)
    if row.partner_id is not None:
        raise SessionFullError
    if _is_expired(row, now_utc=now_utc):
        _transition_status(session, row, status=SessionStatus.ABANDONED, now_utc=now_utc)
        logger.info("session_expired_on_join", session_code=row.code)
        raise SessionExpiredError

    row.partner_id = partner_id
    row.partner_gender = gender.value
    row.partner_push_token = partner_push_token
    _transition_status(session, row, status=SessionStatus.ACTIVE, now_utc=now_utc)
    _queue_push(
        session,
        token=row.creator_push_token,
        title="DuoPlay",
        body="Votre partenaire a rejoint la partie !",
        data={"type": "partner_joined", "sessionCode": row.code},
    )
    logger.info("session_partner_joined", session_code=row.code, partner_id=partner_id)
    return _build_session_snapshot(row)
