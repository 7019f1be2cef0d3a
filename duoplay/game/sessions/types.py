from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from duoplay.game.challenges.types import SessionChallenge


@dataclass(slots=True)
class SessionSnapshot:
    code: str
    display_code: str
    creator_id: str
    creator_gender: str
    partner_id: str | None
    partner_gender: str | None
    status: str
    challenge_count: int
    start_intensity: int
    current_challenge_index: int
    current_player: str
    challenges: list[SessionChallenge]
    creator_changes_used: int
    partner_changes_used: int
    creator_bonus_changes: int
    partner_bonus_changes: int
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(slots=True)
class CreateSessionResult:
    code: str
    display_code: str
    challenge_count: int


@dataclass(slots=True)
class CompleteChallengeResult:
    next_challenge: SessionChallenge | None
    next_index: int
    is_game_over: bool
    progress: int


@dataclass(slots=True)
class ChangeOptions:
    alternatives: list[SessionChallenge]
    remaining_changes: int | None
    total_changes: int | None
    is_unlimited: bool


@dataclass(slots=True)
class BonusChangeResult:
    bonus_changes: int
    remaining_changes: int
    total_changes: int


@dataclass(frozen=True, slots=True)
class SessionStatusChange:
    code: str
    before: str
    after: str
