from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from duoplay.db.models.base import Base
from duoplay.game.challenges.catalog import ChallengeCatalog
from tests.session_fixtures import build_templates


@pytest.fixture
def catalog() -> ChallengeCatalog:
    return ChallengeCatalog.from_templates(build_templates())


@pytest.fixture
async def session_factory():
    # One shared in-memory connection so every session sees the same tables.
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()
