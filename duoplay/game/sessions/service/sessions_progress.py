from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from duoplay.core.session_codes import normalize_session_code
from duoplay.db.repo.sessions_repo import SessionsRepo
from duoplay.game.challenges.types import PlayerRole
from duoplay.game.sessions.constants import SessionStatus
from duoplay.game.sessions.errors import (
    ChallengeAlreadyCompletedError,
    ChallengeNotFoundError,
    NotYourTurnError,
    SessionNotActiveError,
    SessionNotFoundError,
)
from duoplay.game.sessions.types import CompleteChallengeResult

from .sessions_internal import (
    _decode_challenges,
    _queue_push,
    _require_member,
    _store_challenges,
    _transition_status,
)

logger = structlog.get_logger(__name__)


def _expected_validator(for_player: PlayerRole) -> PlayerRole:
    # The player who did not perform the challenge confirms it.
    return for_player.other


async def complete_challenge(
    session: AsyncSession,
    *,
    code: str,
    challenge_index: int,
    user_id: str,
    now_utc: datetime,
) -> CompleteChallengeResult:
    row = await SessionsRepo.get_by_code_for_update(session, normalize_session_code(code))
    if row is None:
        raise SessionNotFoundError
    if row.status != SessionStatus.ACTIVE:
        raise SessionNotActiveError
    challenges = _decode_challenges(row)
    if challenge_index < 0 or challenge_index >= len(challenges):
        raise ChallengeNotFoundError
    challenge = challenges[challenge_index]
    if challenge.completed:
        raise ChallengeAlreadyCompletedError
    role = _require_member(row, user_id)
    if role is not _expected_validator(challenge.for_player):
        raise NotYourTurnError

    challenges[challenge_index] = challenge.model_copy(
        update={"completed": True, "completed_by": user_id, "completed_at": now_utc}
    )
    _store_challenges(row, challenges)

    next_index = challenge_index + 1
    is_game_over = next_index >= row.challenge_count
    next_challenge = None if is_game_over else challenges[next_index]
    row.current_challenge_index = next_index
    row.current_player = (
        next_challenge.for_player.value if next_challenge is not None else PlayerRole.CREATOR.value
    )
    row.updated_at = now_utc
    if is_game_over:
        _transition_status(session, row, status=SessionStatus.COMPLETED, now_utc=now_utc)
    else:
        _queue_push(
            session,
            token=(
                row.creator_push_token
                if next_challenge.for_player is PlayerRole.CREATOR
                else row.partner_push_token
            ),
            title="DuoPlay",
            body="C'est à vous de jouer !",
            data={"type": "your_turn", "sessionCode": row.code, "challengeIndex": next_index},
        )

    progress = round(next_index / row.challenge_count * 100) if row.challenge_count else 100
    logger.info(
        "session_challenge_completed",
        session_code=row.code,
        challenge_index=challenge_index,
        validated_by=role.value,
        is_game_over=is_game_over,
    )
    return CompleteChallengeResult(
        next_challenge=next_challenge,
        next_index=next_index,
        is_game_over=is_game_over,
        progress=progress,
    )
