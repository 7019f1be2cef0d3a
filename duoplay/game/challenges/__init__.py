from duoplay.game.challenges.alternatives import draw_alternatives
from duoplay.game.challenges.catalog import ChallengeCatalog, get_default_catalog
from duoplay.game.challenges.distribution import select_session_challenges
from duoplay.game.challenges.levels import (
    accessible_levels,
    calculate_level_distribution,
    is_level_accessible,
    max_level,
)
from duoplay.game.challenges.types import (
    ChallengeTemplate,
    ChallengeType,
    Gender,
    PlayerRole,
    SessionChallenge,
)

__all__ = [
    "ChallengeCatalog",
    "ChallengeTemplate",
    "ChallengeType",
    "Gender",
    "PlayerRole",
    "SessionChallenge",
    "accessible_levels",
    "calculate_level_distribution",
    "draw_alternatives",
    "get_default_catalog",
    "is_level_accessible",
    "max_level",
    "select_session_challenges",
]
