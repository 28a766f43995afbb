"""Concurrent writers on separate SQL sessions sharing one SQLite file."""

import asyncio
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import TypeVar

import pytest
from sqlalchemy import func, select

from ecostep.carbon.accumulator import Accumulator
from ecostep.carbon.achievements import AchievementUnlocker
from ecostep.db.models import ProfileRow
from ecostep.storage import RetryPolicy, SqlCarbonStore

USER = "user-concurrent"
WRITERS = 10

T = TypeVar("T")


async def _in_session(factory, work: Callable[[SqlCarbonStore], Awaitable[T]]) -> T:
    async with factory() as db:
        return await work(SqlCarbonStore(db, RetryPolicy(attempts=5, backoff_seconds=0.01)))


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_savings_from_separate_sessions_are_not_lost(self, sql_session_factory):
        await _in_session(sql_session_factory, lambda store: store.ensure_profile(USER))

        async def save(store: SqlCarbonStore):
            accumulator = Accumulator(store, max_attempts=WRITERS * 5, backoff_seconds=0.001)
            return await accumulator.apply_saving(USER, Decimal("1.5"))

        await asyncio.gather(*(_in_session(sql_session_factory, save) for _ in range(WRITERS)))

        profile = await _in_session(sql_session_factory, lambda store: store.get_profile(USER))
        assert profile.carbon_saved == Decimal("15")
        assert profile.version == WRITERS
        assert profile.level == 1

    @pytest.mark.asyncio
    async def test_first_time_profile_created_once(self, sql_session_factory):
        profiles = await asyncio.gather(
            *(_in_session(sql_session_factory, lambda store: store.ensure_profile(USER)) for _ in range(WRITERS))
        )

        assert len({p.created_at for p in profiles}) == 1
        assert all(p.version == 0 for p in profiles)
        async with sql_session_factory() as db:
            count = await db.scalar(
                select(func.count()).select_from(ProfileRow).where(ProfileRow.user_id == USER)
            )
        assert count == 1

    @pytest.mark.asyncio
    async def test_concurrent_unlocks_land_once(self, sql_session_factory):
        await _in_session(sql_session_factory, lambda store: store.ensure_profile(USER))

        results = await asyncio.gather(
            *(
                _in_session(
                    sql_session_factory,
                    lambda store: AchievementUnlocker(store).check_and_unlock(USER, Decimal("20")),
                )
                for _ in range(5)
            )
        )

        assert sum(len(r) for r in results) == 2
        rows = await _in_session(sql_session_factory, lambda store: store.list_user_achievements(USER))
        assert {ua.achievement.slug for ua in rows} == {"first_steps", "carbon_saver"}
