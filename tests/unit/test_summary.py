"""Unit tests for the dashboard summary."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from ecostep.carbon.accumulator import Accumulator
from ecostep.carbon.recorder import ActivityRecorder
from ecostep.carbon.summary import build_summary, carbon_by_category, next_achievement
from ecostep.storage import Activity

USER = "user-summary"


def _activity(category: str, impact: str, id_: int = 1) -> Activity:
    return Activity(
        id=id_,
        user_id=USER,
        category=category,
        activity_type="x",
        quantity=Decimal("1"),
        carbon_impact=Decimal(impact),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestCarbonByCategory:
    def test_sums_absolute_impact(self):
        totals = carbon_by_category([
            _activity("transport", "-1.2", 1),
            _activity("transport", "2.4", 2),
            _activity("diet", "-0.5", 3),
        ])
        assert totals == {"transport": Decimal("3.6"), "diet": Decimal("0.5")}

    def test_empty(self):
        assert carbon_by_category([]) == {}


class TestBuildSummary:
    @pytest.mark.asyncio
    async def test_new_user(self, memory_store):
        summary = await build_summary(memory_store, USER)

        assert summary.profile.carbon_saved == Decimal(0)
        assert summary.profile.level == 1
        assert summary.stats.total_activities == 0
        assert summary.stats.carbon_by_category == {}
        assert summary.stats.recent_activities == []
        assert summary.achievements_count == 0
        assert summary.next_achievement.slug == "carbon_saver"
        assert summary.equivalents["trees_planted"] == 0

    @pytest.mark.asyncio
    async def test_is_read_only(self, memory_store):
        await build_summary(memory_store, USER)
        assert await memory_store.get_profile(USER) is None

    @pytest.mark.asyncio
    async def test_recent_activities_newest_first(self, memory_store):
        recorder = ActivityRecorder(memory_store, Accumulator(memory_store, backoff_seconds=0))
        for _ in range(7):
            await recorder.record(USER, "transport", "bike", 10, Decimal("-1.2"))

        summary = await build_summary(memory_store, USER, recent_limit=5)

        assert summary.stats.total_activities == 7
        ids = [a.id for a in summary.stats.recent_activities]
        assert len(ids) == 5
        assert ids == sorted(ids, reverse=True)
        assert summary.stats.total_carbon_saved == Decimal("8.4")
        assert summary.achievements_count == 1
        assert summary.next_achievement.slug == "carbon_saver"

    @pytest.mark.asyncio
    async def test_no_next_achievement_past_top(self, memory_store):
        catalogue = await memory_store.list_achievements()
        assert next_achievement(catalogue, Decimal("5000")) is None
        assert next_achievement(catalogue, Decimal("10")).slug == "eco_enthusiast"
