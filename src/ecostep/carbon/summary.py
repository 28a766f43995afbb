"""Read-only dashboard summary for a user."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ecostep.carbon.levels import carbon_equivalents, level_info
from ecostep.storage.base import Achievement, Activity, CarbonStore, Profile, UserAchievement


@dataclass(frozen=True)
class SummaryStats:
    total_activities: int = 0
    total_carbon_saved: Decimal = Decimal(0)
    carbon_by_category: dict[str, Decimal] = field(default_factory=dict)
    recent_activities: list[Activity] = field(default_factory=list)


@dataclass(frozen=True)
class Summary:
    profile: Profile
    stats: SummaryStats
    achievements_count: int
    next_achievement: Achievement | None
    achievements: list[UserAchievement] = field(default_factory=list)
    level_progress: dict = field(default_factory=dict)
    equivalents: dict = field(default_factory=dict)


def carbon_by_category(activities: list[Activity]) -> dict[str, Decimal]:
    """Sum of |carbon_impact| per category. Categories without activity are omitted."""
    totals: dict[str, Decimal] = {}
    for activity in activities:
        totals[activity.category] = totals.get(activity.category, Decimal(0)) + abs(activity.carbon_impact)
    return totals


def next_achievement(catalogue: list[Achievement], total_saved: Decimal) -> Achievement | None:
    """Lowest-threshold achievement strictly above total_saved."""
    above = [a for a in catalogue if a.carbon_required > total_saved]
    return min(above, key=lambda a: (a.carbon_required, a.id), default=None)


async def build_summary(store: CarbonStore, user_id: str, recent_limit: int = 5) -> Summary:
    """Compose profile, activity log and achievements into a dashboard view.

    Pure read: a user with no profile gets a default level-1 profile in the
    result, but nothing is written.
    """
    profile = await store.get_profile(user_id) or Profile(user_id=user_id)
    activities = await store.list_activities(user_id, newest_first=True)
    unlocked = await store.list_user_achievements(user_id)
    catalogue = await store.list_achievements()

    stats = SummaryStats(
        total_activities=len(activities),
        total_carbon_saved=profile.carbon_saved,
        carbon_by_category=carbon_by_category(activities),
        recent_activities=activities[:recent_limit],
    )

    return Summary(
        profile=profile,
        stats=stats,
        achievements_count=len(unlocked),
        next_achievement=next_achievement(catalogue, profile.carbon_saved),
        achievements=unlocked,
        level_progress=level_info(profile.carbon_saved),
        equivalents=carbon_equivalents(profile.carbon_saved),
    )
