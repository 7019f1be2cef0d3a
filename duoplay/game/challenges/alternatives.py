from __future__ import annotations

import random
from collections.abc import Sequence

from duoplay.game.challenges.catalog import ChallengeCatalog
from duoplay.game.challenges.levels import accessible_levels
from duoplay.game.challenges.types import ChallengeTemplate, Gender, SessionChallenge

DEFAULT_ALTERNATIVES_COUNT = 2


def draw_alternatives(
    challenges: Sequence[SessionChallenge],
    index: int,
    *,
    catalog: ChallengeCatalog,
    is_premium: bool,
    gender: Gender | str | None = None,
    count: int = DEFAULT_ALTERNATIVES_COUNT,
    rng: random.Random | None = None,
) -> list[SessionChallenge]:
    """Replacement candidates for ``challenges[index]``.

    Same level first, then any other level the account can play. Texts already
    present in the session are never offered again.
    """
    if index < 0 or index >= len(challenges):
        raise IndexError(index)
    rng = rng or random.Random()
    target = challenges[index]
    pool_gender = Gender(gender) if gender is not None else target.for_gender
    used_texts = {challenge.text for challenge in challenges}

    picked: list[ChallengeTemplate] = []
    same_level = [
        template
        for template in catalog.get_templates(target.level, pool_gender)
        if template.text not in used_texts
    ]
    picked.extend(rng.sample(same_level, min(count, len(same_level))))

    if len(picked) < count:
        picked_texts = {template.text for template in picked}
        fallback = [
            template
            for level in accessible_levels(is_premium)
            if level != target.level
            for template in catalog.get_templates(level, pool_gender)
            if template.text not in used_texts and template.text not in picked_texts
        ]
        picked.extend(rng.sample(fallback, min(count - len(picked), len(fallback))))

    return [
        SessionChallenge.from_template(template, for_player=target.for_player)
        for template in picked
    ]
