from __future__ import annotations

import random
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from duoplay.core.session_codes import normalize_session_code
from duoplay.db.repo.sessions_repo import SessionsRepo
from duoplay.game.challenges.alternatives import draw_alternatives
from duoplay.game.challenges.catalog import ChallengeCatalog
from duoplay.game.challenges.levels import is_level_accessible
from duoplay.game.challenges.types import ChallengeTemplate, Gender, PlayerRole, SessionChallenge
from duoplay.game.sessions.constants import MAX_BONUS_CHANGES, SessionStatus
from duoplay.game.sessions.errors import (
    ChallengeAlreadyCompletedError,
    ChallengeNotFoundError,
    InvalidReplacementError,
    MaxBonusReachedError,
    NoChangesLeftError,
    SessionNotActiveError,
    SessionNotFoundError,
)
from duoplay.game.sessions.types import BonusChangeResult, ChangeOptions, SessionSnapshot

from .sessions_internal import (
    _bonus_changes,
    _build_session_snapshot,
    _change_budget,
    _decode_challenges,
    _raise_if_terminal,
    _require_member,
    _role_gender,
    _store_challenges,
)

logger = structlog.get_logger(__name__)


def _resolve_replacement(
    catalog: ChallengeCatalog,
    replacement: SessionChallenge,
    *,
    gender: Gender,
    is_premium: bool,
    used_texts: set[str],
) -> ChallengeTemplate:
    """Finds the catalog template behind a client-sent replacement.

    Only prompts the account could have been offered by ``draw_alternatives``
    are accepted.
    """
    if not is_level_accessible(replacement.level, is_premium):
        raise InvalidReplacementError(f"level {replacement.level} is not accessible")
    if replacement.text in used_texts:
        raise InvalidReplacementError("replacement text is already used in this session")
    for template in catalog.get_templates(replacement.level, gender):
        if template.text == replacement.text:
            return template
    raise InvalidReplacementError("replacement text is not in the challenge catalog")


async def get_change_options(
    session: AsyncSession,
    *,
    code: str,
    user_id: str,
    is_premium: bool,
    catalog: ChallengeCatalog,
    rng: random.Random | None = None,
) -> ChangeOptions:
    row = await SessionsRepo.get_by_code(session, normalize_session_code(code))
    if row is None:
        raise SessionNotFoundError
    if row.status != SessionStatus.ACTIVE:
        raise SessionNotActiveError
    role = _require_member(row, user_id)

    remaining: int | None = None
    total: int | None = None
    if not is_premium:
        remaining, total = _change_budget(row, role)
        if remaining <= 0:
            raise NoChangesLeftError

    challenges = _decode_challenges(row)
    index = row.current_challenge_index
    if index >= len(challenges):
        raise ChallengeNotFoundError
    target_role = challenges[index].for_player
    alternatives = draw_alternatives(
        challenges,
        index,
        catalog=catalog,
        is_premium=is_premium,
        gender=_role_gender(row, target_role),
        rng=rng,
    )
    logger.info(
        "session_change_options_drawn",
        session_code=row.code,
        role=role.value,
        alternatives=len(alternatives),
        remaining_changes=remaining,
    )
    return ChangeOptions(
        alternatives=alternatives,
        remaining_changes=remaining,
        total_changes=total,
        is_unlimited=is_premium,
    )


async def swap_challenge(
    session: AsyncSession,
    *,
    code: str,
    challenge_index: int,
    replacement: SessionChallenge,
    user_id: str,
    is_premium: bool,
    now_utc: datetime,
    catalog: ChallengeCatalog,
) -> SessionSnapshot:
    row = await SessionsRepo.get_by_code_for_update(session, normalize_session_code(code))
    if row is None:
        raise SessionNotFoundError
    _raise_if_terminal(row.status)
    challenges = _decode_challenges(row)
    if challenge_index < 0 or challenge_index >= len(challenges):
        raise ChallengeNotFoundError
    role = _require_member(row, user_id)
    current = challenges[challenge_index]
    if current.completed:
        raise ChallengeAlreadyCompletedError
    if not is_premium:
        remaining, _ = _change_budget(row, role)
        if remaining <= 0:
            raise NoChangesLeftError

    template = _resolve_replacement(
        catalog,
        replacement,
        gender=_role_gender(row, current.for_player) or current.for_gender,
        is_premium=is_premium,
        used_texts={challenge.text for challenge in challenges},
    )
    # The slot keeps its performer; only the prompt changes.
    challenges[challenge_index] = SessionChallenge.from_template(
        template,
        for_player=current.for_player,
    )
    _store_challenges(row, challenges)
    if role is PlayerRole.CREATOR:
        row.creator_changes_used = int(row.creator_changes_used or 0) + 1
    else:
        row.partner_changes_used = int(row.partner_changes_used or 0) + 1
    row.updated_at = now_utc
    logger.info(
        "session_challenge_swapped",
        session_code=row.code,
        challenge_index=challenge_index,
        role=role.value,
    )
    return _build_session_snapshot(row)


async def grant_bonus_change(
    session: AsyncSession,
    *,
    code: str,
    user_id: str,
    now_utc: datetime,
) -> BonusChangeResult:
    row = await SessionsRepo.get_by_code_for_update(session, normalize_session_code(code))
    if row is None:
        raise SessionNotFoundError
    _raise_if_terminal(row.status)
    role = _require_member(row, user_id)
    bonus = _bonus_changes(row, role)
    if bonus >= MAX_BONUS_CHANGES:
        raise MaxBonusReachedError

    if role is PlayerRole.CREATOR:
        row.creator_bonus_changes = bonus + 1
    else:
        row.partner_bonus_changes = bonus + 1
    row.updated_at = now_utc
    remaining, total = _change_budget(row, role)
    logger.info(
        "session_bonus_change_granted",
        session_code=row.code,
        role=role.value,
        bonus_changes=bonus + 1,
    )
    return BonusChangeResult(
        bonus_changes=bonus + 1,
        remaining_changes=remaining,
        total_changes=total,
    )
