"""Activity recorder: validate, persist, then run the accounting chain.

Pipeline for one submission:
  1. validate quantity and impact (rounded to the 4-place storage scale),
     resolve category/type  (no side effects on failure)
  2. ensure the profile exists
  3. insert the immutable activity row
  4. if the impact is a saving (< 0): apply it to the accumulator
  5. unlock achievements against the new total

Steps 2-5 each commit on their own. A STORAGE_FAILURE or CONFLICT in step 4
leaves the activity from step 3 in place for reconciliation. A failure in
step 5 is logged and reported via achievements_pending; the activity and the
saving stand.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import structlog

from ecostep.carbon.accumulator import Accumulator
from ecostep.carbon.achievements import AchievementUnlocker
from ecostep.carbon.factors import resolve_activity
from ecostep.errors import InvalidInputError, StorageFailureError
from ecostep.storage.base import Achievement, Activity, CarbonStore, Profile

logger = structlog.get_logger()

# Quantities and impacts are persisted as NUMERIC(14, 4).
STORAGE_SCALE = Decimal("0.0001")
STORAGE_LIMIT = Decimal("1e10")


@dataclass(frozen=True)
class RecordResult:
    activity: Activity
    profile: Profile
    unlocked: list[Achievement] = field(default_factory=list)
    achievements_pending: bool = False


def to_decimal(value: object, field_name: str) -> Decimal:
    """Coerce a numeric field to a finite Decimal or raise INVALID_INPUT."""
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f"{field_name} must be a number")
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f"{field_name} must be a number") from None
    if not number.is_finite():
        raise InvalidInputError(f"{field_name} must be finite")
    return number


def to_stored_decimal(value: object, field_name: str) -> Decimal:
    """Like to_decimal, rounded to the storage scale and bounded to the column range."""
    number = to_decimal(value, field_name)
    if abs(number) >= STORAGE_LIMIT:
        raise InvalidInputError(f"{field_name} is out of range")
    number = number.quantize(STORAGE_SCALE, rounding=ROUND_HALF_UP)
    if abs(number) >= STORAGE_LIMIT:
        raise InvalidInputError(f"{field_name} is out of range")
    return number


class ActivityRecorder:
    """Records activities and feeds savings into the accumulator and unlocker."""

    def __init__(
        self,
        store: CarbonStore,
        accumulator: Accumulator | None = None,
        unlocker: AchievementUnlocker | None = None,
    ) -> None:
        self.store = store
        self.accumulator = accumulator or Accumulator(store)
        self.unlocker = unlocker or AchievementUnlocker(store)

    async def record(
        self,
        user_id: str,
        category: str,
        activity_type: str,
        quantity: object,
        carbon_impact: object,
    ) -> RecordResult:
        """Validate and persist one activity, then apply any saving it represents."""
        if not isinstance(user_id, str) or not user_id.strip():
            raise InvalidInputError("user_id is required")

        quantity = to_stored_decimal(quantity, "quantity")
        if quantity <= 0:
            raise InvalidInputError(f"quantity must be at least {STORAGE_SCALE}")
        carbon_impact = to_stored_decimal(carbon_impact, "carbon_impact")

        cat, kind = resolve_activity(category, activity_type)

        profile = await self.store.ensure_profile(user_id)
        activity = await self.store.insert_activity(
            user_id=user_id,
            category=cat.value,
            activity_type=kind.value,
            quantity=quantity,
            carbon_impact=carbon_impact,
        )
        logger.info(
            "activity_recorded",
            user_id=user_id,
            activity_id=activity.id,
            category=cat.value,
            activity_type=kind.value,
            carbon_impact=str(carbon_impact),
        )

        # Emitting activities are logged only; they never reduce the accumulator.
        if carbon_impact >= 0:
            return RecordResult(activity=activity, profile=profile)

        profile = await self.accumulator.apply_saving(user_id, abs(carbon_impact))

        try:
            unlocked = await self.unlocker.check_and_unlock(user_id, profile.carbon_saved)
        except StorageFailureError:
            logger.warning(
                "achievement_unlock_failed",
                user_id=user_id,
                total=str(profile.carbon_saved),
                exc_info=True,
            )
            return RecordResult(activity=activity, profile=profile, achievements_pending=True)

        return RecordResult(activity=activity, profile=profile, unlocked=unlocked)
