"""duoplay_sessions_and_messages

Revision ID: 3b9d2e7f1a40
Revises:
Create Date: 2026-10-18 09:30:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3b9d2e7f1a40"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "game_sessions",
        sa.Column("code", sa.String(6), nullable=False),
        sa.Column("creator_id", sa.String(128), nullable=False),
        sa.Column("creator_gender", sa.String(16), nullable=False),
        sa.Column("creator_push_token", sa.String(256), nullable=True),
        sa.Column("partner_id", sa.String(128), nullable=True),
        sa.Column("partner_gender", sa.String(16), nullable=True),
        sa.Column("partner_push_token", sa.String(256), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("challenge_count", sa.Integer(), nullable=False),
        sa.Column("start_intensity", sa.Integer(), nullable=False),
        sa.Column("current_challenge_index", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("current_player", sa.String(16), nullable=False),
        sa.Column("challenges", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("creator_changes_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("partner_changes_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("creator_bonus_changes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("partner_bonus_changes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('waiting','active','completed','abandoned')",
            name="ck_game_sessions_status",
        ),
        sa.CheckConstraint(
            "current_player IN ('creator','partner')",
            name="ck_game_sessions_current_player",
        ),
        sa.CheckConstraint(
            "challenge_count >= 0",
            name="ck_game_sessions_challenge_count_non_negative",
        ),
        sa.CheckConstraint(
            "start_intensity BETWEEN 1 AND 4",
            name="ck_game_sessions_start_intensity_range",
        ),
        sa.CheckConstraint(
            "current_challenge_index >= 0 AND current_challenge_index <= challenge_count",
            name="ck_game_sessions_current_challenge_index_range",
        ),
        sa.CheckConstraint(
            "creator_changes_used >= 0 AND partner_changes_used >= 0",
            name="ck_game_sessions_changes_used_non_negative",
        ),
        sa.CheckConstraint(
            "creator_bonus_changes >= 0 AND partner_bonus_changes >= 0",
            name="ck_game_sessions_bonus_changes_non_negative",
        ),
        sa.PrimaryKeyConstraint("code", name="pk_game_sessions"),
    )
    op.create_index("idx_game_sessions_status_created", "game_sessions", ["status", "created_at"])
    op.create_index("idx_game_sessions_creator_status", "game_sessions", ["creator_id", "status"])
    op.create_index("idx_game_sessions_partner_status", "game_sessions", ["partner_id", "status"])

    op.create_table(
        "session_messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("session_code", sa.String(6), nullable=False),
        sa.Column("sender_id", sa.String(128), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("media_url", sa.Text(), nullable=True),
        sa.Column("media_thumbnail", sa.Text(), nullable=True),
        sa.Column("media_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "kind IN ('text','audio','photo','video')",
            name="ck_session_messages_kind",
        ),
        sa.ForeignKeyConstraint(
            ["session_code"],
            ["game_sessions.code"],
            name="fk_session_messages_session_code_game_sessions",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_session_messages"),
    )
    op.create_index(
        "idx_session_messages_session_created",
        "session_messages",
        ["session_code", "created_at"],
    )
    op.create_index(
        "idx_session_messages_session_media_expires",
        "session_messages",
        ["session_code", "media_expires_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_session_messages_session_media_expires", table_name="session_messages")
    op.drop_index("idx_session_messages_session_created", table_name="session_messages")
    op.drop_table("session_messages")
    op.drop_index("idx_game_sessions_partner_status", table_name="game_sessions")
    op.drop_index("idx_game_sessions_creator_status", table_name="game_sessions")
    op.drop_index("idx_game_sessions_status_created", table_name="game_sessions")
    op.drop_table("game_sessions")
