from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TypeVar

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from duoplay.core.config import get_settings
from duoplay.db.session import SessionLocal
from duoplay.game.challenges.catalog import ChallengeCatalog, get_default_catalog
from duoplay.game.challenges.types import Gender, SessionChallenge
from duoplay.game.sessions.constants import DEFAULT_HISTORY_LIMIT
from duoplay.game.sessions.errors import DuoPlayError
from duoplay.game.sessions.messages import NETWORK_ERROR_CODE, UNKNOWN_ERROR_CODE
from duoplay.game.sessions.results import OperationResult
from duoplay.game.sessions.service import GameSessionService
from duoplay.game.sessions.types import (
    BonusChangeResult,
    ChangeOptions,
    CompleteChallengeResult,
    CreateSessionResult,
    SessionSnapshot,
    SessionStatusChange,
)
from duoplay.services.db_retry import is_transient_db_error, retry_backoff_seconds
from duoplay.services.push_notifications import ExpoPushNotifier, PushMessage, PushNotifier
from duoplay.workers.tasks.session_events import handle_session_status_change

logger = structlog.get_logger(__name__)

T = TypeVar("T")
StatusChangeHook = Callable[[str, str, str], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionServiceFacade:
    """Entry point for every callable session operation.

    Each call runs in its own transaction and comes back as an
    ``OperationResult``; domain errors never escape as exceptions. Status edges
    and push messages recorded by the service are dispatched after commit.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        catalog: ChallengeCatalog | None = None,
        on_status_change: StatusChangeHook | None = None,
        push_notifier: PushNotifier | None = None,
        clock: Callable[[], datetime] = _utc_now,
        max_attempts: int | None = None,
        backoff_max_seconds: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        settings = get_settings()
        self._session_factory = session_factory or SessionLocal
        self._catalog = catalog
        self._on_status_change = on_status_change or handle_session_status_change
        self._push_notifier = push_notifier or ExpoPushNotifier()
        self._clock = clock
        self._max_attempts = max(1, int(max_attempts or settings.db_retry_max_attempts))
        self._backoff_max_seconds = int(
            backoff_max_seconds
            if backoff_max_seconds is not None
            else settings.db_retry_backoff_max_seconds
        )
        self._sleep = sleep
        self._rng = rng

    @property
    def catalog(self) -> ChallengeCatalog:
        if self._catalog is None:
            self._catalog = get_default_catalog()
        return self._catalog

    async def _dispatch(
        self,
        *,
        status_changes: list[SessionStatusChange],
        push_messages: list[PushMessage],
    ) -> None:
        for change in status_changes:
            try:
                self._on_status_change(change.code, change.before, change.after)
            except Exception:
                logger.exception(
                    "session_status_change_dispatch_failed",
                    session_code=change.code,
                    before=change.before,
                    after=change.after,
                )
        if push_messages:
            await self._push_notifier.send(push_messages)

    async def _run(
        self,
        operation: str,
        call: Callable[[AsyncSession, datetime], Awaitable[T]],
    ) -> OperationResult[T]:
        attempt = 0
        while True:
            attempt += 1
            try:
                async with self._session_factory() as session:
                    try:
                        data = await call(session, self._clock())
                    except DuoPlayError as exc:
                        if exc.commit_side_effects:
                            await session.commit()
                            status_changes = GameSessionService.pop_status_changes(session)
                        else:
                            await session.rollback()
                            status_changes = []
                        GameSessionService.pop_push_messages(session)
                        logger.info(
                            "session_operation_rejected",
                            operation=operation,
                            error_code=exc.code,
                            error_kind=exc.kind.value,
                        )
                        await self._dispatch(status_changes=status_changes, push_messages=[])
                        return OperationResult.fail(exc.code)
                    await session.commit()
                    status_changes = GameSessionService.pop_status_changes(session)
                    push_messages = GameSessionService.pop_push_messages(session)
            except SQLAlchemyError as exc:
                if not is_transient_db_error(exc):
                    logger.exception("session_operation_db_failed", operation=operation)
                    return OperationResult.fail(UNKNOWN_ERROR_CODE)
                if attempt >= self._max_attempts:
                    logger.warning(
                        "session_operation_transient_exhausted",
                        operation=operation,
                        attempts=attempt,
                    )
                    return OperationResult.fail(NETWORK_ERROR_CODE)
                delay = retry_backoff_seconds(
                    next_retry_attempt=attempt,
                    backoff_max_seconds=self._backoff_max_seconds,
                )
                logger.info(
                    "session_operation_retry_scheduled",
                    operation=operation,
                    attempt=attempt,
                    delay_seconds=delay,
                )
                await self._sleep(delay)
                continue

            await self._dispatch(status_changes=status_changes, push_messages=push_messages)
            return OperationResult.ok(data)

    async def create_session(
        self,
        *,
        creator_id: str,
        creator_gender: Gender | str,
        challenge_count: int,
        start_intensity: int,
        is_premium: bool,
        partner_gender: Gender | str | None = None,
        push_token: str | None = None,
    ) -> OperationResult[CreateSessionResult]:
        catalog = self.catalog

        async def call(session: AsyncSession, now_utc: datetime) -> CreateSessionResult:
            return await GameSessionService.create_session(
                session,
                creator_id=creator_id,
                creator_gender=creator_gender,
                challenge_count=challenge_count,
                start_intensity=start_intensity,
                is_premium=is_premium,
                now_utc=now_utc,
                catalog=catalog,
                partner_gender=partner_gender,
                creator_push_token=push_token,
                rng=self._rng,
            )

        return await self._run("create_session", call)

    async def join_session(
        self,
        *,
        code: str,
        partner_id: str,
        partner_gender: Gender | str,
        push_token: str | None = None,
    ) -> OperationResult[SessionSnapshot]:
        async def call(session: AsyncSession, now_utc: datetime) -> SessionSnapshot:
            return await GameSessionService.join_session(
                session,
                code=code,
                partner_id=partner_id,
                partner_gender=partner_gender,
                now_utc=now_utc,
                partner_push_token=push_token,
            )

        return await self._run("join_session", call)

    async def get_session(self, *, code: str) -> OperationResult[SessionSnapshot]:
        async def call(session: AsyncSession, now_utc: datetime) -> SessionSnapshot:
            return await GameSessionService.get_session_snapshot(session, code=code)

        return await self._run("get_session", call)

    async def complete_challenge(
        self,
        *,
        code: str,
        challenge_index: int,
        user_id: str,
    ) -> OperationResult[CompleteChallengeResult]:
        async def call(session: AsyncSession, now_utc: datetime) -> CompleteChallengeResult:
            return await GameSessionService.complete_challenge(
                session,
                code=code,
                challenge_index=challenge_index,
                user_id=user_id,
                now_utc=now_utc,
            )

        return await self._run("complete_challenge", call)

    async def get_change_options(
        self,
        *,
        code: str,
        user_id: str,
        is_premium: bool,
    ) -> OperationResult[ChangeOptions]:
        catalog = self.catalog

        async def call(session: AsyncSession, now_utc: datetime) -> ChangeOptions:
            return await GameSessionService.get_change_options(
                session,
                code=code,
                user_id=user_id,
                is_premium=is_premium,
                catalog=catalog,
                rng=self._rng,
            )

        return await self._run("get_change_options", call)

    async def swap_challenge(
        self,
        *,
        code: str,
        challenge_index: int,
        replacement: SessionChallenge,
        user_id: str,
        is_premium: bool,
    ) -> OperationResult[SessionSnapshot]:
        catalog = self.catalog

        async def call(session: AsyncSession, now_utc: datetime) -> SessionSnapshot:
            return await GameSessionService.swap_challenge(
                session,
                code=code,
                challenge_index=challenge_index,
                replacement=replacement,
                user_id=user_id,
                is_premium=is_premium,
                now_utc=now_utc,
                catalog=catalog,
            )

        return await self._run("swap_challenge", call)

    async def grant_bonus_change(
        self,
        *,
        code: str,
        user_id: str,
    ) -> OperationResult[BonusChangeResult]:
        async def call(session: AsyncSession, now_utc: datetime) -> BonusChangeResult:
            return await GameSessionService.grant_bonus_change(
                session,
                code=code,
                user_id=user_id,
                now_utc=now_utc,
            )

        return await self._run("grant_bonus_change", call)

    async def abandon_session(self, *, code: str, user_id: str) -> OperationResult[SessionSnapshot]:
        async def call(session: AsyncSession, now_utc: datetime) -> SessionSnapshot:
            return await GameSessionService.abandon_session(
                session,
                code=code,
                user_id=user_id,
                now_utc=now_utc,
            )

        return await self._run("abandon_session", call)

    async def delete_session(self, *, code: str, user_id: str) -> OperationResult[None]:
        async def call(session: AsyncSession, now_utc: datetime) -> None:
            await GameSessionService.delete_session(session, code=code, user_id=user_id)

        return await self._run("delete_session", call)

    async def list_active_sessions(self, *, user_id: str) -> OperationResult[list[SessionSnapshot]]:
        async def call(session: AsyncSession, now_utc: datetime) -> list[SessionSnapshot]:
            return await GameSessionService.list_active_sessions(session, user_id=user_id)

        return await self._run("list_active_sessions", call)

    async def list_session_history(
        self,
        *,
        user_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> OperationResult[list[SessionSnapshot]]:
        async def call(session: AsyncSession, now_utc: datetime) -> list[SessionSnapshot]:
            return await GameSessionService.list_session_history(
                session,
                user_id=user_id,
                limit=limit,
            )

        return await self._run("list_session_history", call)
