"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ecostep.carbon.seed import seed_achievements
from ecostep.config import Settings
from ecostep.database import create_engine, create_session_factory, create_tables
from ecostep.main import create_app, shutdown, startup
from ecostep.storage import MemoryCarbonStore, RetryPolicy, SqlCarbonStore


def sqlite_url(tmp_path: Path, name: str = "ecostep.db") -> str:
    return f"sqlite+aiosqlite:///{tmp_path / name}"


def make_settings(tmp_path: Path, **overrides: object) -> Settings:
    """Settings for an isolated app: SQLite file in tmp_path, tables auto-created."""
    values: dict[str, object] = {
        "storage_backend": "sql",
        "database_url": sqlite_url(tmp_path, "api.db"),
        "auto_create_tables": True,
        "seed_achievements": True,
        "log_format": "console",
        "accumulator_backoff_seconds": 0.0,
        "storage_retry_backoff_seconds": 0.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest_asyncio.fixture
async def memory_store() -> MemoryCarbonStore:
    """In-memory store with the achievement catalogue seeded."""
    store = MemoryCarbonStore()
    await seed_achievements(store)
    return store


@pytest_asyncio.fixture
async def sql_store(tmp_path: Path) -> AsyncGenerator[SqlCarbonStore, None]:
    """SQLite-backed store on a fresh database file, catalogue seeded."""
    engine = create_engine(sqlite_url(tmp_path))
    await create_tables(engine)
    factory = create_session_factory(engine)
    async with factory() as db:
        store = SqlCarbonStore(db, RetryPolicy(attempts=2, backoff_seconds=0))
        await seed_achievements(store)
        yield store
    await engine.dispose()


async def _serve(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    # ASGITransport does not run lifespan events; drive startup/shutdown directly
    await startup(app)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await shutdown(app)


@pytest_asyncio.fixture
async def app(tmp_path: Path) -> FastAPI:
    return create_app(make_settings(tmp_path))


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the SQL (SQLite) backend."""
    async for ac in _serve(app):
        yield ac


@pytest_asyncio.fixture
async def memory_app(tmp_path: Path) -> FastAPI:
    return create_app(make_settings(tmp_path, storage_backend="memory"))


@pytest_asyncio.fixture
async def memory_client(memory_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the in-memory backend."""
    async for ac in _serve(memory_app):
        yield ac


@pytest_asyncio.fixture
async def sql_session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a seeded SQLite file, for tests that need several sessions."""
    engine = create_engine(sqlite_url(tmp_path, "shared.db"))
    await create_tables(engine)
    factory = create_session_factory(engine)
    async with factory() as db:
        await seed_achievements(SqlCarbonStore(db))
    yield factory
    await engine.dispose()
