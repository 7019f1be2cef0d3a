from __future__ import annotations

import structlog

from duoplay.core.config import get_settings
from duoplay.media.blob_store import build_blob_store
from duoplay.media.janitor import (
    cleanup_session_media_async,
    sweep_expired_media_async,
)
from duoplay.workers.asyncio_runner import run_async_job
from duoplay.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)

SWEEP_TASK_NAME = "duoplay.workers.tasks.media_cleanup.run_expired_media_sweep"
SESSION_CLEANUP_TASK_NAME = "duoplay.workers.tasks.media_cleanup.cleanup_session_media"


def _clamp_schedule_seconds(value: int) -> int:
    return max(30, min(86400, int(value)))


async def run_expired_media_sweep_async() -> dict[str, object]:
    return await sweep_expired_media_async(blob_store=build_blob_store())


async def cleanup_session_media_job_async(session_code: str) -> dict[str, object]:
    return await cleanup_session_media_async(session_code, blob_store=build_blob_store())


@celery_app.task(name=SWEEP_TASK_NAME)
def run_expired_media_sweep() -> dict[str, object]:
    return run_async_job(run_expired_media_sweep_async(), job_name="expired_media_sweep")


@celery_app.task(
    name=SESSION_CLEANUP_TASK_NAME,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_jitter=True,
    max_retries=5,
)
def cleanup_session_media(session_code: str) -> dict[str, object]:
    return run_async_job(
        cleanup_session_media_job_async(session_code),
        job_name="session_media_cleanup",
    )


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
settings = get_settings()
schedule_seconds = _clamp_schedule_seconds(settings.media_cleanup_schedule_seconds)
celery_app.conf.beat_schedule.update(
    {
        "expired-media-sweep": {
            "task": SWEEP_TASK_NAME,
            "schedule": schedule_seconds,
            "options": {
                "queue": "q_low",
                "expires": schedule_seconds,
            },
        },
    }
)
