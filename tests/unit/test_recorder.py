"""Unit tests for the activity recording pipeline."""

from decimal import Decimal

import pytest

from ecostep.carbon.accumulator import Accumulator
from ecostep.carbon.recorder import ActivityRecorder, to_decimal, to_stored_decimal
from ecostep.carbon.seed import seed_achievements
from ecostep.errors import (
    ConflictError,
    InvalidInputError,
    StorageFailureError,
    UnknownTypeError,
)
from ecostep.storage import MemoryCarbonStore

USER = "user-recorder"


class FailingAccountingStore(MemoryCarbonStore):
    async def compare_and_set_saving(self, user_id, expected_version, carbon_saved, level):
        raise StorageFailureError


class FailingUnlockStore(MemoryCarbonStore):
    async def insert_user_achievement(self, user_id, achievement_id):
        raise StorageFailureError


class StaleStore(MemoryCarbonStore):
    async def compare_and_set_saving(self, user_id, expected_version, carbon_saved, level):
        return False


def _recorder(store: MemoryCarbonStore) -> ActivityRecorder:
    return ActivityRecorder(store, Accumulator(store, max_attempts=2, backoff_seconds=0))


class TestRecord:
    @pytest.mark.asyncio
    async def test_saving_updates_profile_and_unlocks(self, memory_store):
        result = await _recorder(memory_store).record(USER, "transport", "bike", 10, Decimal("-1.2"))

        assert result.activity.carbon_impact == Decimal("-1.2")
        assert result.activity.quantity == Decimal("10")
        assert result.profile.carbon_saved == Decimal("1.2")
        assert result.profile.level == 1
        assert [a.slug for a in result.unlocked] == ["first_steps"]
        assert result.achievements_pending is False

    @pytest.mark.asyncio
    async def test_emitting_activity_leaves_total_alone(self, memory_store):
        result = await _recorder(memory_store).record(USER, "transport", "car", 20, Decimal("2.4"))

        assert result.profile.carbon_saved == Decimal(0)
        assert result.unlocked == []
        profile = await memory_store.get_profile(USER)
        assert profile.carbon_saved == Decimal(0)
        assert profile.version == 0
        assert len(await memory_store.list_activities(USER)) == 1

    @pytest.mark.asyncio
    async def test_zero_impact_is_not_a_saving(self, memory_store):
        result = await _recorder(memory_store).record(USER, "energy", "saved", 1, 0)
        assert result.profile.version == 0
        assert result.unlocked == []

    @pytest.mark.asyncio
    async def test_total_matches_sum_of_savings(self, memory_store):
        recorder = _recorder(memory_store)
        impacts = ["-1.2", "3.0", "-40", "-0.3", "2.5", "-60"]
        for impact in impacts:
            await recorder.record(USER, "diet", "vegan", 1, impact)

        expected = sum(abs(Decimal(i)) for i in impacts if Decimal(i) < 0)
        profile = await memory_store.get_profile(USER)
        assert profile.carbon_saved == expected
        assert profile.level == 2

        slugs = {ua.achievement.slug for ua in await memory_store.list_user_achievements(USER)}
        assert slugs == {"first_steps", "carbon_saver", "eco_enthusiast", "climate_champion"}


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -5, "abc", None, True, float("nan")])
    async def test_invalid_quantity(self, memory_store, quantity):
        with pytest.raises(InvalidInputError):
            await _recorder(memory_store).record(USER, "transport", "bike", quantity, -1)
        assert await memory_store.get_profile(USER) is None

    @pytest.mark.asyncio
    async def test_invalid_impact(self, memory_store):
        with pytest.raises(InvalidInputError):
            await _recorder(memory_store).record(USER, "transport", "bike", 1, "lots")

    @pytest.mark.asyncio
    async def test_blank_user(self, memory_store):
        with pytest.raises(InvalidInputError):
            await _recorder(memory_store).record("  ", "transport", "bike", 1, -1)

    @pytest.mark.asyncio
    async def test_unknown_type_has_no_side_effects(self, memory_store):
        with pytest.raises(UnknownTypeError):
            await _recorder(memory_store).record(USER, "transport", "teleport", 1, -1)
        assert await memory_store.get_profile(USER) is None
        assert await memory_store.list_activities(USER) == []

    def test_to_decimal_accepts_strings_and_numbers(self):
        assert to_decimal("2.5", "value") == Decimal("2.5")
        assert to_decimal(3, "value") == Decimal(3)
        assert to_decimal(Decimal("1.1"), "value") == Decimal("1.1")

    def test_to_stored_decimal_rounds_to_four_places(self):
        assert to_stored_decimal("1.23456", "value") == Decimal("1.2346")
        assert to_stored_decimal("-0.00006", "value") == Decimal("-0.0001")
        assert to_stored_decimal("0.00004", "value") == Decimal("0")

    def test_to_stored_decimal_range(self):
        with pytest.raises(InvalidInputError):
            to_stored_decimal("1e10", "value")
        with pytest.raises(InvalidInputError):
            to_stored_decimal("9999999999.99996", "value")

    @pytest.mark.asyncio
    async def test_quantity_rounding_to_zero_rejected(self, memory_store):
        with pytest.raises(InvalidInputError):
            await _recorder(memory_store).record(USER, "transport", "bike", "0.00001", -1)
        assert await memory_store.get_profile(USER) is None

    @pytest.mark.asyncio
    async def test_tiny_saving_rounds_away(self, memory_store):
        result = await _recorder(memory_store).record(USER, "transport", "bike", 1, "-0.00004")
        assert result.activity.carbon_impact == Decimal("0")
        assert result.profile.version == 0


class TestPartialFailure:
    @pytest.mark.asyncio
    async def test_accounting_failure_keeps_activity(self):
        store = FailingAccountingStore()
        await seed_achievements(store)

        with pytest.raises(StorageFailureError):
            await _recorder(store).record(USER, "transport", "bike", 10, Decimal("-1.2"))

        activities = await store.list_activities(USER)
        assert len(activities) == 1
        assert (await store.get_profile(USER)).carbon_saved == Decimal(0)

    @pytest.mark.asyncio
    async def test_conflict_keeps_activity(self):
        store = StaleStore()
        with pytest.raises(ConflictError):
            await _recorder(store).record(USER, "transport", "bike", 10, Decimal("-1.2"))
        assert len(await store.list_activities(USER)) == 1

    @pytest.mark.asyncio
    async def test_unlock_failure_is_not_fatal(self):
        store = FailingUnlockStore()
        await seed_achievements(store)

        result = await _recorder(store).record(USER, "transport", "bike", 10, Decimal("-1.2"))

        assert result.achievements_pending is True
        assert result.unlocked == []
        assert result.profile.carbon_saved == Decimal("1.2")
        assert (await store.get_profile(USER)).carbon_saved == Decimal("1.2")
