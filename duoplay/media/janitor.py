from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from time import perf_counter

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from duoplay.core.config import get_settings
from duoplay.core.session_codes import normalize_session_code
from duoplay.db.repo.messages_repo import MessagesRepo
from duoplay.db.repo.sessions_repo import SessionsRepo
from duoplay.db.session import SessionLocal
from duoplay.game.sessions.constants import LIVE_STATUSES
from duoplay.media.blob_store import BlobStore
from duoplay.media.storage_paths import SESSIONS_PREFIX, extract_storage_path, session_media_prefix

logger = structlog.get_logger(__name__)

EXPIRED_MEDIA_PLACEHOLDER = "[Média expiré]"
MAX_BATCH_SIZE = 500

SessionFactory = async_sessionmaker[AsyncSession]


def _clamp_batch_size(value: int) -> int:
    return max(1, min(MAX_BATCH_SIZE, int(value)))


def _clamp_runtime_seconds(value: int) -> int:
    return max(5, min(600, int(value)))


async def _delete_blobs(blob_store: BlobStore, paths: list[str]) -> tuple[int, int]:
    if not paths:
        return 0, 0
    results = await asyncio.gather(*(blob_store.delete(path) for path in paths))
    deleted = sum(1 for ok in results if ok)
    return deleted, len(results) - deleted


async def _sweep_session(
    *,
    session_code: str,
    session_factory: SessionFactory,
    blob_store: BlobStore,
    now_utc: datetime,
    batch_size: int,
) -> dict[str, int]:
    messages_cleared = 0
    files_deleted = 0
    file_errors = 0
    while True:
        async with session_factory() as session:
            expired = await MessagesRepo.list_expired_media_for_session(
                session,
                session_code=session_code,
                now_utc=now_utc,
                limit=batch_size,
            )
        if not expired:
            break

        paths: list[str] = []
        for message in expired:
            for reference in (message.media_url, message.media_thumbnail):
                path = extract_storage_path(reference)
                if path is not None:
                    paths.append(path)
        deleted, errors = await _delete_blobs(blob_store, paths)
        files_deleted += deleted
        file_errors += errors

        async with session_factory.begin() as session:
            cleared = await MessagesRepo.clear_media(
                session,
                message_ids=[message.id for message in expired],
                placeholder=EXPIRED_MEDIA_PLACEHOLDER,
            )
        messages_cleared += cleared
        if len(expired) < batch_size:
            break

    return {
        "messages_cleared": messages_cleared,
        "files_deleted": files_deleted,
        "file_errors": file_errors,
    }


async def sweep_expired_media_async(
    *,
    session_factory: SessionFactory | None = None,
    blob_store: BlobStore,
    now_utc: datetime | None = None,
    batch_size: int | None = None,
    max_runtime_seconds: int | None = None,
) -> dict[str, object]:
    settings = get_settings()
    factory = session_factory or SessionLocal
    resolved_now = now_utc or datetime.now(timezone.utc)
    resolved_batch_size = _clamp_batch_size(batch_size or settings.media_cleanup_batch_size)
    resolved_runtime = _clamp_runtime_seconds(
        max_runtime_seconds or settings.media_cleanup_max_runtime_seconds
    )
    started_at = perf_counter()

    async with factory() as session:
        codes = await SessionsRepo.list_codes_by_statuses(session, statuses=LIVE_STATUSES)

    sessions_scanned = 0
    sessions_with_expired_media = 0
    messages_cleared = 0
    files_deleted = 0
    file_errors = 0
    runtime_guard_triggered = False

    for session_code in codes:
        if perf_counter() - started_at >= resolved_runtime:
            runtime_guard_triggered = True
            break
        sessions_scanned += 1
        session_result = await _sweep_session(
            session_code=session_code,
            session_factory=factory,
            blob_store=blob_store,
            now_utc=resolved_now,
            batch_size=resolved_batch_size,
        )
        if session_result["messages_cleared"] > 0:
            sessions_with_expired_media += 1
            logger.info("media_sweep_session_cleaned", session_code=session_code, **session_result)
        messages_cleared += session_result["messages_cleared"]
        files_deleted += session_result["files_deleted"]
        file_errors += session_result["file_errors"]

    result: dict[str, object] = {
        "generated_at": resolved_now.isoformat(),
        "live_sessions": len(codes),
        "sessions_scanned": sessions_scanned,
        "sessions_with_expired_media": sessions_with_expired_media,
        "messages_cleared": messages_cleared,
        "files_deleted": files_deleted,
        "file_errors": file_errors,
        "batch_size": resolved_batch_size,
        "runtime_guard_seconds": resolved_runtime,
        "stopped_by_runtime_guard": runtime_guard_triggered,
        "duration_ms": int((perf_counter() - started_at) * 1000),
    }
    if file_errors > 0:
        logger.warning("media_sweep_finished_with_errors", **result)
    else:
        logger.info("media_sweep_finished", **result)
    return result


async def cleanup_session_media_async(
    session_code: str,
    *,
    session_factory: SessionFactory | None = None,
    blob_store: BlobStore,
    batch_size: int | None = None,
) -> dict[str, object]:
    """Remove every blob under the session prefix and all of its messages."""
    settings = get_settings()
    factory = session_factory or SessionLocal
    code = normalize_session_code(session_code)
    resolved_batch_size = _clamp_batch_size(batch_size or settings.media_cleanup_batch_size)

    blobs = await blob_store.list(session_media_prefix(code))
    files_deleted, file_errors = await _delete_blobs(blob_store, [blob.path for blob in blobs])

    messages_deleted = 0
    batches_executed = 0
    while True:
        async with factory.begin() as session:
            deleted = await MessagesRepo.delete_for_session_batch(
                session,
                session_code=code,
                limit=resolved_batch_size,
            )
        batches_executed += 1
        messages_deleted += deleted
        if deleted < resolved_batch_size:
            break

    result: dict[str, object] = {
        "session_code": code,
        "files_found": len(blobs),
        "files_deleted": files_deleted,
        "file_errors": file_errors,
        "messages_deleted": messages_deleted,
        "batches_executed": batches_executed,
    }
    if file_errors > 0:
        logger.warning("media_session_cleanup_finished_with_errors", **result)
    else:
        logger.info("media_session_cleanup_finished", **result)
    return result


async def manual_cleanup_async(
    *,
    session_code: str | None,
    force: bool = False,
    session_factory: SessionFactory | None = None,
    blob_store: BlobStore,
) -> dict[str, object]:
    factory = session_factory or SessionLocal
    if session_code is None:
        sweep = await sweep_expired_media_async(session_factory=factory, blob_store=blob_store)
        return {"success": True, "reason": "sweep", "sweep": sweep}

    code = normalize_session_code(session_code)
    async with factory() as session:
        status = await SessionsRepo.get_status(session, code)
    if status is None:
        return {"success": False, "reason": "session_not_found", "session_code": code}
    if status in LIVE_STATUSES and not force:
        return {
            "success": False,
            "reason": "session_live",
            "session_code": code,
            "status": status,
        }

    cleanup = await cleanup_session_media_async(code, session_factory=factory, blob_store=blob_store)
    logger.info("media_manual_cleanup_done", session_code=code, status=status, forced=force)
    return {
        "success": True,
        "reason": "cleaned",
        "session_code": code,
        "files_deleted": cleanup["files_deleted"],
        "messages_deleted": cleanup["messages_deleted"],
    }


async def collect_storage_stats_async(
    *,
    session_factory: SessionFactory | None = None,
    blob_store: BlobStore,
    now_utc: datetime | None = None,
) -> dict[str, object]:
    factory = session_factory or SessionLocal
    resolved_now = now_utc or datetime.now(timezone.utc)
    async with factory() as session:
        by_status = await SessionsRepo.count_by_status(session)
        total_messages = await MessagesRepo.count_all(session)
        expired_media = await MessagesRepo.count_expired_media(session, now_utc=resolved_now)
    blobs = await blob_store.list(SESSIONS_PREFIX)
    total_bytes = sum(blob.size for blob in blobs)

    stats: dict[str, object] = {
        "total_sessions": sum(by_status.values()),
        "active_sessions": sum(by_status.get(status.value, 0) for status in LIVE_STATUSES),
        "sessions_by_status": by_status,
        "total_messages": total_messages,
        "expired_media_count": expired_media,
        "total_media_files": len(blobs),
        "storage_used_mb": round(total_bytes / (1024 * 1024), 2),
    }
    logger.info("media_storage_stats_computed", **stats)
    return stats
