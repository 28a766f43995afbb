"""Storage contract shared by every carbon accounting component."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Protocol


@dataclass(frozen=True)
class Profile:
    user_id: str
    carbon_saved: Decimal = Decimal(0)
    level: int = 1
    version: int = 0
    created_at: datetime | None = None


@dataclass(frozen=True)
class Activity:
    id: int
    user_id: str
    category: str
    activity_type: str
    quantity: Decimal
    carbon_impact: Decimal
    created_at: datetime


@dataclass(frozen=True)
class Achievement:
    id: int
    slug: str
    name: str
    description: str
    carbon_required: Decimal
    icon: str = ""


@dataclass(frozen=True)
class AchievementDefinition:
    """Seed row for the static achievement catalogue."""

    slug: str
    name: str
    description: str
    carbon_required: Decimal
    icon: str = ""


@dataclass(frozen=True)
class UserAchievement:
    user_id: str
    achievement: Achievement
    unlocked_at: datetime = field(compare=False)


class CarbonStore(Protocol):
    """Relational/key store the accounting core reads and writes through.

    Implementations raise StorageFailureError for any store error other than
    the uniqueness no-ops described on each method.
    """

    # --- Profiles ---

    async def get_profile(self, user_id: str) -> Profile | None: ...

    async def ensure_profile(self, user_id: str) -> Profile:
        """Insert a default profile if absent and return the stored row."""
        ...

    async def compare_and_set_saving(
        self,
        user_id: str,
        expected_version: int,
        carbon_saved: Decimal,
        level: int,
    ) -> bool:
        """Write total and level only if the row is still at expected_version."""
        ...

    # --- Activities ---

    async def insert_activity(
        self,
        user_id: str,
        category: str,
        activity_type: str,
        quantity: Decimal,
        carbon_impact: Decimal,
    ) -> Activity: ...

    async def list_activities(
        self,
        user_id: str,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> list[Activity]: ...

    # --- Achievements ---

    async def list_achievements(self, max_required: Decimal | None = None) -> list[Achievement]:
        """Achievements ordered by carbon_required ascending, optionally capped."""
        ...

    async def upsert_achievements(self, definitions: Iterable[AchievementDefinition]) -> int: ...

    # --- User achievements ---

    async def insert_user_achievement(self, user_id: str, achievement_id: int) -> bool:
        """Insert-if-absent. Returns False when the pair already exists."""
        ...

    async def list_user_achievements(self, user_id: str) -> list[UserAchievement]: ...
