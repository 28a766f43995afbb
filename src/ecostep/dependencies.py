"""Shared FastAPI dependencies.

The storage backend lives on app.state (set up in main.startup); handlers
receive a CarbonStore and the components built on it by injection.
"""

from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ecostep.carbon.accumulator import Accumulator
from ecostep.carbon.achievements import AchievementUnlocker
from ecostep.carbon.recorder import ActivityRecorder
from ecostep.config import Settings
from ecostep.storage import CarbonStore, MemoryCarbonStore, RetryPolicy, SqlCarbonStore

StoreOpener = Callable[[], AbstractAsyncContextManager[CarbonStore]]


def memory_store_opener(store: MemoryCarbonStore) -> StoreOpener:
    """Every request shares the one in-process store."""

    @asynccontextmanager
    async def _open() -> AsyncIterator[CarbonStore]:
        yield store

    return _open


def sql_store_opener(
    session_factory: async_sessionmaker[AsyncSession],
    retry: RetryPolicy,
) -> StoreOpener:
    """Each request gets its own session-backed store."""

    @asynccontextmanager
    async def _open() -> AsyncIterator[CarbonStore]:
        async with session_factory() as db:
            yield SqlCarbonStore(db, retry)

    return _open


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_store(request: Request) -> AsyncGenerator[CarbonStore, None]:
    """Yield a CarbonStore for the current request (FastAPI dependency)."""
    opener: StoreOpener | None = getattr(request.app.state, "open_store", None)
    if opener is None:
        msg = "Storage not initialized. Call startup() first."
        raise RuntimeError(msg)
    async with opener() as store:
        yield store


def get_recorder(
    store: CarbonStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> ActivityRecorder:
    accumulator = Accumulator(
        store,
        max_attempts=settings.accumulator_max_attempts,
        backoff_seconds=settings.accumulator_backoff_seconds,
    )
    return ActivityRecorder(store, accumulator, AchievementUnlocker(store))
