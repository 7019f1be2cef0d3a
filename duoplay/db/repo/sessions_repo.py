from __future__ import annotations

from collections.abc import Collection

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from duoplay.db.models.game_sessions import GameSession


class SessionsRepo:
    @staticmethod
    async def get_by_code(session: AsyncSession, code: str) -> GameSession | None:
        return await session.get(GameSession, code)

    @staticmethod
    async def get_by_code_for_update(session: AsyncSession, code: str) -> GameSession | None:
        stmt = select(GameSession).where(GameSession.code == code).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def exists(session: AsyncSession, code: str) -> bool:
        stmt = select(GameSession.code).where(GameSession.code == code).limit(1)
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def create(session: AsyncSession, *, row: GameSession) -> GameSession:
        session.add(row)
        await session.flush()
        return row

    @staticmethod
    async def delete_by_code(session: AsyncSession, code: str) -> int:
        stmt = delete(GameSession).where(GameSession.code == code)
        result = await session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    async def list_live_for_user(session: AsyncSession, *, user_id: str) -> list[GameSession]:
        stmt = (
            select(GameSession)
            .where(
                or_(
                    and_(
                        GameSession.creator_id == user_id,
                        GameSession.status.in_(("waiting", "active")),
                    ),
                    and_(
                        GameSession.partner_id == user_id,
                        GameSession.status == "active",
                    ),
                )
            )
            .order_by(GameSession.created_at.desc(), GameSession.code.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_history_for_user(
        session: AsyncSession,
        *,
        user_id: str,
        limit: int,
    ) -> list[GameSession]:
        stmt = (
            select(GameSession)
            .where(
                or_(GameSession.creator_id == user_id, GameSession.partner_id == user_id),
                GameSession.status.in_(("completed", "abandoned")),
            )
            .order_by(GameSession.completed_at.desc(), GameSession.code.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_codes_by_statuses(
        session: AsyncSession,
        *,
        statuses: Collection[str],
    ) -> list[str]:
        stmt = (
            select(GameSession.code)
            .where(GameSession.status.in_(tuple(statuses)))
            .order_by(GameSession.created_at.asc(), GameSession.code.asc())
        )
        result = await session.execute(stmt)
        return [str(code) for code in result.scalars().all()]

    @staticmethod
    async def get_status(session: AsyncSession, code: str) -> str | None:
        stmt = select(GameSession.status).where(GameSession.code == code)
        result = await session.execute(stmt)
        status = result.scalar_one_or_none()
        return str(status) if status is not None else None

    @staticmethod
    async def count_by_status(session: AsyncSession) -> dict[str, int]:
        stmt = select(GameSession.status, func.count(GameSession.code)).group_by(
            GameSession.status
        )
        result = await session.execute(stmt)
        return {str(status): int(total) for status, total in result.all()}
