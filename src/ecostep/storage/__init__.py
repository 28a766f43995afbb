"""Storage contract and its SQL and in-memory implementations."""

from ecostep.storage.base import (
    Achievement,
    AchievementDefinition,
    Activity,
    CarbonStore,
    Profile,
    UserAchievement,
)
from ecostep.storage.memory import MemoryCarbonStore
from ecostep.storage.retry import RetryPolicy
from ecostep.storage.sql import SqlCarbonStore

__all__ = [
    "Achievement",
    "AchievementDefinition",
    "Activity",
    "CarbonStore",
    "MemoryCarbonStore",
    "Profile",
    "RetryPolicy",
    "SqlCarbonStore",
    "UserAchievement",
]
