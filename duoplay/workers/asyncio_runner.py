from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from duoplay.db.session import dispose_engine

T = TypeVar("T")


async def _run_with_fresh_db_pool(awaitable: Awaitable[T], job_name: str | None) -> T:
    await dispose_engine()
    if job_name:
        structlog.contextvars.bind_contextvars(job_name=job_name)
    try:
        return await awaitable
    finally:
        if job_name:
            structlog.contextvars.unbind_contextvars("job_name")
        await dispose_engine()


def run_async_job(awaitable: Awaitable[T], *, job_name: str | None = None) -> T:
    return asyncio.run(_run_with_fresh_db_pool(awaitable, job_name))
