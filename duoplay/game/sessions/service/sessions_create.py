from __future__ import annotations

import random
from collections.abc import Callable
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from duoplay.core.session_codes import format_session_code, generate_session_code
from duoplay.db.models.game_sessions import GameSession
from duoplay.db.repo.sessions_repo import SessionsRepo
from duoplay.game.challenges.catalog import ChallengeCatalog
from duoplay.game.challenges.distribution import select_session_challenges
from duoplay.game.challenges.types import Gender
from duoplay.game.sessions.constants import (
    MIN_CHALLENGE_COUNT,
    SessionStatus,
    max_challenge_count,
)
from duoplay.game.sessions.errors import (
    CodeGenerationExhaustedError,
    InvalidSessionConfigError,
)
from duoplay.game.sessions.types import CreateSessionResult

from .constants import SESSION_CODE_MAX_ATTEMPTS
from .sessions_internal import _parse_gender, _store_challenges

logger = structlog.get_logger(__name__)


def _validate_session_config(*, challenge_count: int, start_intensity: int, is_premium: bool) -> None:
    upper = max_challenge_count(is_premium)
    if not MIN_CHALLENGE_COUNT <= challenge_count <= upper:
        raise InvalidSessionConfigError(
            f"challenge_count must be within {MIN_CHALLENGE_COUNT}..{upper}"
        )
    if not 1 <= start_intensity <= 4:
        raise InvalidSessionConfigError("start_intensity must be within 1..4")


async def _generate_unique_code(
    session: AsyncSession,
    *,
    code_generator: Callable[[], str],
    max_attempts: int,
) -> str:
    for attempt in range(1, max_attempts + 1):
        code = code_generator()
        if not await SessionsRepo.exists(session, code):
            return code
        logger.info("session_code_collision", attempt=attempt)
    raise CodeGenerationExhaustedError(f"no free code after {max_attempts} attempts")


async def create_session(
    session: AsyncSession,
    *,
    creator_id: str,
    creator_gender: Gender | str,
    challenge_count: int,
    start_intensity: int,
    is_premium: bool,
    now_utc: datetime,
    catalog: ChallengeCatalog,
    partner_gender: Gender | str | None = None,
    creator_push_token: str | None = None,
    code_generator: Callable[[], str] = generate_session_code,
    max_attempts: int = SESSION_CODE_MAX_ATTEMPTS,
    rng: random.Random | None = None,
) -> CreateSessionResult:
    _validate_session_config(
        challenge_count=challenge_count,
        start_intensity=start_intensity,
        is_premium=is_premium,
    )
    creator = _parse_gender(creator_gender, field="creator_gender")
    partner = (
        _parse_gender(partner_gender, field="partner_gender")
        if partner_gender is not None
        else creator.opposite
    )

    challenges = select_session_challenges(
        catalog=catalog,
        creator_gender=creator,
        partner_gender=partner,
        count=challenge_count,
        start_level=start_intensity,
        is_premium=is_premium,
        rng=rng,
    )
    if not challenges:
        raise InvalidSessionConfigError("challenge catalog returned no challenges")

    code = await _generate_unique_code(
        session,
        code_generator=code_generator,
        max_attempts=max_attempts,
    )
    row = GameSession(
        code=code,
        creator_id=creator_id,
        creator_gender=creator.value,
        creator_push_token=creator_push_token,
        partner_id=None,
        partner_gender=None,
        status=SessionStatus.WAITING.value,
        challenge_count=len(challenges),
        start_intensity=start_intensity,
        current_challenge_index=0,
        current_player=challenges[0].for_player.value,
        challenges=[],
        creator_changes_used=0,
        partner_changes_used=0,
        creator_bonus_changes=0,
        partner_bonus_changes=0,
        created_at=now_utc,
        updated_at=now_utc,
    )
    _store_challenges(row, challenges)
    await SessionsRepo.create(session, row=row)
    logger.info(
        "session_created",
        session_code=code,
        creator_id=creator_id,
        challenge_count=len(challenges),
        start_intensity=start_intensity,
        is_premium=is_premium,
    )
    return CreateSessionResult(
        code=code,
        display_code=format_session_code(code),
        challenge_count=len(challenges),
    )
