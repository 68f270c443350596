"""Fixtures backed by a throwaway SQLite database, or Postgres when configured.

Set ``IPLAY_TEST_POSTGRES_URL`` (an ``postgresql+asyncpg://`` URL to a
disposable database) to run the Postgres-only tests.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iplay.database import create_engine, create_session_factory
from iplay.db.base import Base
from iplay.db import models  # noqa: F401


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'iplay.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def pg_session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    url = os.environ.get("IPLAY_TEST_POSTGRES_URL")
    if not url:
        pytest.skip("IPLAY_TEST_POSTGRES_URL not set")
    engine = create_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_factory(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
