from __future__ import annotations

from datetime import datetime, timedelta, timezone

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from duoplay.core.session_codes import format_session_code
from duoplay.db.models.game_sessions import GameSession
from duoplay.game.challenges.types import Gender, PlayerRole, SessionChallenge
from duoplay.game.sessions.constants import (
    MAX_CHANGES,
    TERMINAL_STATUSES,
    SessionStatus,
)
from duoplay.game.sessions.errors import (
    InvalidSessionConfigError,
    NotSessionMemberError,
    SessionAbandonedError,
    SessionAlreadyStartedError,
    SessionCompletedError,
    SessionDecodeError,
)
from duoplay.game.sessions.types import SessionSnapshot, SessionStatusChange
from duoplay.services.push_notifications import PushMessage

from .constants import PUSH_MESSAGES_INFO_KEY, SESSION_TTL_SECONDS, STATUS_CHANGES_INFO_KEY


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_gender(value: Gender | str, *, field: str) -> Gender:
    try:
        return Gender(value)
    except ValueError as exc:
        raise InvalidSessionConfigError(f"{field} must be one of homme, femme") from exc


def _resolve_role(row: GameSession, user_id: str) -> PlayerRole | None:
    if row.creator_id == user_id:
        return PlayerRole.CREATOR
    if row.partner_id is not None and row.partner_id == user_id:
        return PlayerRole.PARTNER
    return None


def _require_member(row: GameSession, user_id: str) -> PlayerRole:
    role = _resolve_role(row, user_id)
    if role is None:
        raise NotSessionMemberError
    return role


def _role_gender(row: GameSession, role: PlayerRole) -> Gender | None:
    raw = row.creator_gender if role is PlayerRole.CREATOR else row.partner_gender
    return Gender(raw) if raw else None


def _is_expired(row: GameSession, *, now_utc: datetime) -> bool:
    return now_utc > _as_utc(row.created_at) + timedelta(seconds=SESSION_TTL_SECONDS)


def _raise_for_not_waiting(status: str) -> None:
    if status == SessionStatus.ACTIVE:
        raise SessionAlreadyStartedError
    if status == SessionStatus.ABANDONED:
        raise SessionAbandonedError
    raise SessionCompletedError


def _raise_if_terminal(status: str) -> None:
    if status == SessionStatus.ABANDONED:
        raise SessionAbandonedError
    if status == SessionStatus.COMPLETED:
        raise SessionCompletedError


def _decode_challenges(row: GameSession) -> list[SessionChallenge]:
    try:
        return [SessionChallenge.model_validate(item) for item in row.challenges or []]
    except ValidationError as exc:
        raise SessionDecodeError(f"session {row.code} has malformed challenges") from exc


def _encode_challenges(challenges: list[SessionChallenge]) -> list[dict[str, object]]:
    return [challenge.model_dump(mode="json") for challenge in challenges]


def _store_challenges(row: GameSession, challenges: list[SessionChallenge]) -> None:
    # New list object so the JSON column is flagged dirty.
    row.challenges = _encode_challenges(challenges)


def _changes_used(row: GameSession, role: PlayerRole) -> int:
    if role is PlayerRole.CREATOR:
        return int(row.creator_changes_used or 0)
    return int(row.partner_changes_used or 0)


def _bonus_changes(row: GameSession, role: PlayerRole) -> int:
    if role is PlayerRole.CREATOR:
        return int(row.creator_bonus_changes or 0)
    return int(row.partner_bonus_changes or 0)


def _change_budget(row: GameSession, role: PlayerRole) -> tuple[int, int]:
    """Returns (remaining, total) swaps for a non-premium player."""
    total = MAX_CHANGES + _bonus_changes(row, role)
    remaining = max(0, total - _changes_used(row, role))
    return remaining, total


def _transition_status(
    session: AsyncSession,
    row: GameSession,
    *,
    status: SessionStatus,
    now_utc: datetime,
) -> None:
    before = row.status
    if before == status:
        return
    row.status = status.value
    row.updated_at = now_utc
    if status == SessionStatus.ACTIVE:
        row.started_at = now_utc
    if status in TERMINAL_STATUSES:
        row.completed_at = now_utc
    session.info.setdefault(STATUS_CHANGES_INFO_KEY, []).append(
        SessionStatusChange(code=row.code, before=before, after=status.value)
    )


def pop_status_changes(session: AsyncSession) -> list[SessionStatusChange]:
    return list(session.info.pop(STATUS_CHANGES_INFO_KEY, []))


def _queue_push(
    session: AsyncSession,
    *,
    token: str | None,
    title: str,
    body: str,
    data: dict[str, object],
) -> None:
    if not token:
        return
    session.info.setdefault(PUSH_MESSAGES_INFO_KEY, []).append(
        PushMessage(token=token, title=title, body=body, data=data)
    )


def pop_push_messages(session: AsyncSession) -> list[PushMessage]:
    return list(session.info.pop(PUSH_MESSAGES_INFO_KEY, []))


def _build_session_snapshot(row: GameSession) -> SessionSnapshot:
    return SessionSnapshot(
        code=row.code,
        display_code=format_session_code(row.code),
        creator_id=row.creator_id,
        creator_gender=row.creator_gender,
        partner_id=row.partner_id,
        partner_gender=row.partner_gender,
        status=row.status,
        challenge_count=row.challenge_count,
        start_intensity=row.start_intensity,
        current_challenge_index=row.current_challenge_index,
        current_player=row.current_player,
        challenges=_decode_challenges(row),
        creator_changes_used=int(row.creator_changes_used or 0),
        partner_changes_used=int(row.partner_changes_used or 0),
        creator_bonus_changes=int(row.creator_bonus_changes or 0),
        partner_bonus_changes=int(row.partner_bonus_changes or 0),
        created_at=_as_utc(row.created_at),
        started_at=_as_utc(row.started_at) if row.started_at is not None else None,
        completed_at=_as_utc(row.completed_at) if row.completed_at is not None else None,
    )
