"""Achievement unlock engine: idempotent threshold checks."""

from __future__ import annotations

from decimal import Decimal

import structlog

from ecostep.storage.base import Achievement, CarbonStore, UserAchievement

logger = structlog.get_logger()


class AchievementUnlocker:
    """Unlocks every achievement whose threshold the user's total has reached."""

    def __init__(self, store: CarbonStore) -> None:
        self.store = store

    async def check_and_unlock(self, user_id: str, current_total: Decimal) -> list[Achievement]:
        """Unlock newly qualified achievements for user_id.

        Returns the achievements unlocked by this call (may be empty).
        The check-then-insert sequence is not atomic; the unique
        (user_id, achievement_id) constraint decides races, and a losing
        insert counts as already unlocked.
        """
        qualifying = await self.store.list_achievements(max_required=Decimal(current_total))
        if not qualifying:
            return []

        unlocked_ids = {ua.achievement.id for ua in await self.store.list_user_achievements(user_id)}
        pending = [a for a in qualifying if a.id not in unlocked_ids]

        unlocked: list[Achievement] = []
        for achievement in pending:
            if await self.store.insert_user_achievement(user_id, achievement.id):
                unlocked.append(achievement)
                logger.info(
                    "achievement_unlocked",
                    user_id=user_id,
                    achievement=achievement.slug,
                    carbon_required=str(achievement.carbon_required),
                    total=str(current_total),
                )
            else:
                logger.debug("achievement_already_unlocked", user_id=user_id, achievement=achievement.slug)

        return unlocked


def achievement_progress(
    achievement: Achievement,
    catalogue: list[Achievement],
    total_saved: Decimal,
    unlocked: bool,
) -> int:
    """Percent progress from the previous threshold to this one.

    Unlocked achievements report 100; locked ones are capped at 99.
    """
    if unlocked:
        return 100

    previous = max(
        (a.carbon_required for a in catalogue if a.carbon_required < achievement.carbon_required),
        default=Decimal(0),
    )
    span = achievement.carbon_required - previous
    if span <= 0:
        return 0

    progress = int((Decimal(total_saved) - previous) * 100 // span)
    return max(0, min(99, progress))


def unlocked_map(rows: list[UserAchievement]) -> dict[int, UserAchievement]:
    """Index a user's unlocked rows by achievement id."""
    return {ua.achievement.id: ua for ua in rows}
