from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Gender(StrEnum):
    HOMME = "homme"
    FEMME = "femme"

    @property
    def opposite(self) -> Gender:
        return Gender.FEMME if self is Gender.HOMME else Gender.HOMME


class ChallengeType(StrEnum):
    AUDIO = "audio"
    VIDEO = "video"
    PHOTO = "photo"
    TEXT = "text"


class PlayerRole(StrEnum):
    CREATOR = "creator"
    PARTNER = "partner"

    @property
    def other(self) -> PlayerRole:
        return PlayerRole.PARTNER if self is PlayerRole.CREATOR else PlayerRole.CREATOR


@dataclass(frozen=True, slots=True)
class ChallengeTemplate:
    text: str
    type: ChallengeType
    theme: str
    level: int
    gender: Gender


class SessionChallenge(BaseModel):
    """One challenge of a session as stored in the ``challenges`` JSON column.

    ``for_gender`` only says which text pool the prompt came from;
    ``for_player`` decides who performs it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    text: str = Field(min_length=1)
    level: int = Field(ge=1, le=4)
    type: ChallengeType
    for_gender: Gender
    for_player: PlayerRole
    completed: bool = False
    completed_by: str | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_template(cls, template: ChallengeTemplate, *, for_player: PlayerRole) -> SessionChallenge:
        return cls(
            text=template.text,
            level=template.level,
            type=template.type,
            for_gender=template.gender,
            for_player=for_player,
        )
