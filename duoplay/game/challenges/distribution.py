from __future__ import annotations

import random

import structlog

from duoplay.game.challenges.catalog import ChallengeCatalog
from duoplay.game.challenges.levels import calculate_level_distribution
from duoplay.game.challenges.types import Gender, PlayerRole, SessionChallenge

logger = structlog.get_logger(__name__)


def split_between_roles(distribution: dict[int, int]) -> dict[PlayerRole, dict[int, int]]:
    """Halve every level bucket between the two roles.

    Odd buckets hand their extra item to the creator and the partner in turn,
    starting with the creator, so the creator ends up with ``ceil(count / 2)``.
    """
    per_role: dict[PlayerRole, dict[int, int]] = {
        PlayerRole.CREATOR: {},
        PlayerRole.PARTNER: {},
    }
    extra_goes_to = PlayerRole.CREATOR
    for level in sorted(distribution):
        bucket = distribution[level]
        half = bucket // 2
        creator_share = half
        partner_share = half
        if bucket % 2:
            if extra_goes_to is PlayerRole.CREATOR:
                creator_share += 1
            else:
                partner_share += 1
            extra_goes_to = extra_goes_to.other
        per_role[PlayerRole.CREATOR][level] = creator_share
        per_role[PlayerRole.PARTNER][level] = partner_share
    return per_role


def _draw_role_challenges(
    *,
    catalog: ChallengeCatalog,
    role: PlayerRole,
    gender: Gender,
    per_level: dict[int, int],
    rng: random.Random,
    exclude_texts: frozenset[str] = frozenset(),
) -> list[SessionChallenge]:
    drawn: list[SessionChallenge] = []
    for level, wanted in sorted(per_level.items()):
        if wanted <= 0:
            continue
        pool = [
            template
            for template in catalog.get_templates(level, gender)
            if template.text not in exclude_texts
        ]
        if len(pool) < wanted:
            logger.warning(
                "challenge_pool_too_small",
                level=level,
                gender=gender.value,
                requested=wanted,
                available=len(pool),
            )
        for template in rng.sample(pool, min(wanted, len(pool))):
            drawn.append(SessionChallenge.from_template(template, for_player=role))
    rng.shuffle(drawn)
    drawn.sort(key=lambda challenge: challenge.level)
    return drawn


def _interleave(
    creator_items: list[SessionChallenge],
    partner_items: list[SessionChallenge],
) -> list[SessionChallenge]:
    merged: list[SessionChallenge] = []
    for position in range(max(len(creator_items), len(partner_items))):
        if position < len(creator_items):
            merged.append(creator_items[position])
        if position < len(partner_items):
            merged.append(partner_items[position])
    return merged


def select_session_challenges(
    *,
    catalog: ChallengeCatalog,
    creator_gender: Gender | str,
    partner_gender: Gender | str,
    count: int,
    start_level: int,
    is_premium: bool,
    rng: random.Random | None = None,
) -> list[SessionChallenge]:
    rng = rng or random.Random()
    distribution = calculate_level_distribution(
        count=count,
        start_level=start_level,
        is_premium=is_premium,
    )
    per_role = split_between_roles(distribution)

    creator_items = _draw_role_challenges(
        catalog=catalog,
        role=PlayerRole.CREATOR,
        gender=Gender(creator_gender),
        per_level=per_role[PlayerRole.CREATOR],
        rng=rng,
    )
    partner_items = _draw_role_challenges(
        catalog=catalog,
        role=PlayerRole.PARTNER,
        gender=Gender(partner_gender),
        per_level=per_role[PlayerRole.PARTNER],
        rng=rng,
        # Same-gender couples share one pool.
        exclude_texts=frozenset(challenge.text for challenge in creator_items),
    )
    challenges = _interleave(creator_items, partner_items)
    challenges.sort(key=lambda challenge: challenge.level)
    return challenges
