"""In-process CarbonStore used by the memory backend and unit tests."""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

from ecostep.errors import StorageFailureError
from ecostep.storage.base import (
    Achievement,
    AchievementDefinition,
    Activity,
    Profile,
    UserAchievement,
)


class MemoryCarbonStore:
    """Dict-backed store with the same uniqueness and versioning rules as SQL.

    read_latency (seconds) is awaited after a profile is read, so concurrent
    callers can act on a stale version and hit a conditional-write conflict.
    """

    def __init__(self, read_latency: float | None = None) -> None:
        self.read_latency = read_latency
        self._profiles: dict[str, Profile] = {}
        self._activities: list[Activity] = []
        self._achievements: dict[str, Achievement] = {}
        self._unlocked: dict[tuple[str, int], UserAchievement] = {}
        self._activity_ids = itertools.count(1)
        self._achievement_ids = itertools.count(1)

    async def _pause(self) -> None:
        if self.read_latency is not None:
            await asyncio.sleep(self.read_latency)

    # --- Profiles ---

    async def get_profile(self, user_id: str) -> Profile | None:
        profile = self._profiles.get(user_id)
        await self._pause()
        return profile

    async def ensure_profile(self, user_id: str) -> Profile:
        # setdefault keeps concurrent first-time calls to a single row
        return self._profiles.setdefault(
            user_id,
            Profile(user_id=user_id, created_at=datetime.now(timezone.utc)),
        )

    async def compare_and_set_saving(
        self,
        user_id: str,
        expected_version: int,
        carbon_saved: Decimal,
        level: int,
    ) -> bool:
        current = self._profiles.get(user_id)
        if current is None or current.version != expected_version:
            return False
        self._profiles[user_id] = replace(
            current,
            carbon_saved=carbon_saved,
            level=level,
            version=expected_version + 1,
        )
        return True

    # --- Activities ---

    async def insert_activity(
        self,
        user_id: str,
        category: str,
        activity_type: str,
        quantity: Decimal,
        carbon_impact: Decimal,
    ) -> Activity:
        if user_id not in self._profiles:
            raise StorageFailureError  # foreign key violation in SQL
        activity = Activity(
            id=next(self._activity_ids),
            user_id=user_id,
            category=category,
            activity_type=activity_type,
            quantity=quantity,
            carbon_impact=carbon_impact,
            created_at=datetime.now(timezone.utc),
        )
        self._activities.append(activity)
        return activity

    async def list_activities(
        self,
        user_id: str,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> list[Activity]:
        await self._pause()
        rows = sorted(
            (a for a in self._activities if a.user_id == user_id),
            key=lambda a: (a.created_at, a.id),
            reverse=newest_first,
        )
        return rows[:limit] if limit is not None else rows

    # --- Achievements ---

    async def list_achievements(self, max_required: Decimal | None = None) -> list[Achievement]:
        await self._pause()
        rows = sorted(self._achievements.values(), key=lambda a: (a.carbon_required, a.id))
        if max_required is not None:
            rows = [a for a in rows if a.carbon_required <= max_required]
        return rows

    async def upsert_achievements(self, definitions: Iterable[AchievementDefinition]) -> int:
        count = 0
        for d in definitions:
            existing = self._achievements.get(d.slug)
            achievement_id = existing.id if existing else next(self._achievement_ids)
            self._achievements[d.slug] = Achievement(
                id=achievement_id,
                slug=d.slug,
                name=d.name,
                description=d.description,
                carbon_required=d.carbon_required,
                icon=d.icon,
            )
            count += 1
        return count

    # --- User achievements ---

    async def insert_user_achievement(self, user_id: str, achievement_id: int) -> bool:
        key = (user_id, achievement_id)
        if key in self._unlocked:
            return False
        achievement = next(
            (a for a in self._achievements.values() if a.id == achievement_id), None
        )
        if achievement is None or user_id not in self._profiles:
            raise StorageFailureError  # foreign key violation in SQL
        self._unlocked[key] = UserAchievement(
            user_id=user_id,
            achievement=achievement,
            unlocked_at=datetime.now(timezone.utc),
        )
        return True

    async def list_user_achievements(self, user_id: str) -> list[UserAchievement]:
        await self._pause()
        rows = [ua for (uid, _), ua in self._unlocked.items() if uid == user_id]
        return sorted(rows, key=lambda ua: ua.unlocked_at)
