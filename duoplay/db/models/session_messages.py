from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from duoplay.db.models.base import Base


class SessionMessage(Base):
    __tablename__ = "session_messages"
    __table_args__ = (
        CheckConstraint(
            "kind IN ('text','audio','photo','video')",
            name="kind",
        ),
        Index("idx_session_messages_session_created", "session_code", "created_at"),
        Index("idx_session_messages_session_media_expires", "session_code", "media_expires_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)
    session_code: Mapped[str] = mapped_column(
        String(6),
        ForeignKey("game_sessions.code", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[str] = mapped_column(String(128), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    media_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_thumbnail: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
