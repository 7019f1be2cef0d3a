from __future__ import annotations

from collections.abc import Collection
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from duoplay.db.models.session_messages import SessionMessage


class MessagesRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        session_code: str,
        sender_id: str,
        kind: str,
        content: str,
        created_at: datetime,
        media_url: str | None = None,
        media_thumbnail: str | None = None,
        media_expires_at: datetime | None = None,
    ) -> SessionMessage:
        message = SessionMessage(
            id=uuid4(),
            session_code=session_code,
            sender_id=sender_id,
            kind=kind,
            content=content,
            media_url=media_url,
            media_thumbnail=media_thumbnail,
            media_expires_at=media_expires_at,
            created_at=created_at,
        )
        session.add(message)
        await session.flush()
        return message

    @staticmethod
    async def list_expired_media_for_session(
        session: AsyncSession,
        *,
        session_code: str,
        now_utc: datetime,
        limit: int,
    ) -> list[SessionMessage]:
        stmt = (
            select(SessionMessage)
            .where(
                SessionMessage.session_code == session_code,
                SessionMessage.media_expires_at.is_not(None),
                SessionMessage.media_expires_at < now_utc,
                or_(
                    SessionMessage.media_url.is_not(None),
                    SessionMessage.media_thumbnail.is_not(None),
                ),
            )
            .order_by(SessionMessage.media_expires_at.asc(), SessionMessage.id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def clear_media(
        session: AsyncSession,
        *,
        message_ids: Collection[UUID],
        placeholder: str,
    ) -> int:
        if not message_ids:
            return 0
        stmt = (
            update(SessionMessage)
            .where(SessionMessage.id.in_(tuple(message_ids)))
            .values(
                media_url=None,
                media_thumbnail=None,
                media_expires_at=None,
                content=placeholder,
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    async def delete_for_session_batch(
        session: AsyncSession,
        *,
        session_code: str,
        limit: int,
    ) -> int:
        ids_stmt = (
            select(SessionMessage.id)
            .where(SessionMessage.session_code == session_code)
            .order_by(SessionMessage.created_at.asc(), SessionMessage.id.asc())
            .limit(limit)
        )
        ids = list((await session.execute(ids_stmt)).scalars().all())
        if not ids:
            return 0
        stmt = (
            delete(SessionMessage)
            .where(SessionMessage.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    async def count_all(session: AsyncSession) -> int:
        stmt = select(func.count(SessionMessage.id))
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def count_for_session(session: AsyncSession, *, session_code: str) -> int:
        stmt = select(func.count(SessionMessage.id)).where(
            SessionMessage.session_code == session_code
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def count_expired_media(session: AsyncSession, *, now_utc: datetime) -> int:
        stmt = select(func.count(SessionMessage.id)).where(
            SessionMessage.media_expires_at.is_not(None),
            SessionMessage.media_expires_at < now_utc,
            or_(
                SessionMessage.media_url.is_not(None),
                SessionMessage.media_thumbnail.is_not(None),
            ),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)
