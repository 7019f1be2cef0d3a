from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from duoplay.db.models.base import Base, JSONDocument


class GameSession(Base):
    __tablename__ = "game_sessions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('waiting','active','completed','abandoned')",
            name="status",
        ),
        CheckConstraint(
            "current_player IN ('creator','partner')",
            name="current_player",
        ),
        CheckConstraint("challenge_count >= 0", name="challenge_count_non_negative"),
        CheckConstraint(
            "start_intensity BETWEEN 1 AND 4",
            name="start_intensity_range",
        ),
        CheckConstraint(
            "current_challenge_index >= 0 AND current_challenge_index <= challenge_count",
            name="current_challenge_index_range",
        ),
        CheckConstraint(
            "creator_changes_used >= 0 AND partner_changes_used >= 0",
            name="changes_used_non_negative",
        ),
        CheckConstraint(
            "creator_bonus_changes >= 0 AND partner_bonus_changes >= 0",
            name="bonus_changes_non_negative",
        ),
        Index("idx_game_sessions_status_created", "status", "created_at"),
        Index("idx_game_sessions_creator_status", "creator_id", "status"),
        Index("idx_game_sessions_partner_status", "partner_id", "status"),
    )

    code: Mapped[str] = mapped_column(String(6), primary_key=True)
    creator_id: Mapped[str] = mapped_column(String(128), nullable=False)
    creator_gender: Mapped[str] = mapped_column(String(16), nullable=False)
    creator_push_token: Mapped[str | None] = mapped_column(String(256), nullable=True)
    partner_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    partner_gender: Mapped[str | None] = mapped_column(String(16), nullable=True)
    partner_push_token: Mapped[str | None] = mapped_column(String(256), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    challenge_count: Mapped[int] = mapped_column(Integer, nullable=False)
    start_intensity: Mapped[int] = mapped_column(Integer, nullable=False)
    current_challenge_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_player: Mapped[str] = mapped_column(String(16), nullable=False)
    challenges: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False)
    creator_changes_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    partner_changes_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    creator_bonus_changes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    partner_bonus_changes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
