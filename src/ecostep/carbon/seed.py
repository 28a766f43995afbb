"""Achievement seed data: 7 thresholds matching the dashboard's achievement page."""

from __future__ import annotations

import logging
from decimal import Decimal

from ecostep.storage.base import AchievementDefinition, CarbonStore

logger = logging.getLogger(__name__)

ACHIEVEMENT_SEED_DATA: list[AchievementDefinition] = [
    AchievementDefinition(
        slug="first_steps",
        name="First Steps",
        description="Track your first eco-friendly activity",
        icon="\U0001f331",
        carbon_required=Decimal("0"),
    ),
    AchievementDefinition(
        slug="carbon_saver",
        name="Carbon Saver",
        description="Save 10 kg of carbon emissions",
        icon="\U0001f33f",
        carbon_required=Decimal("10"),
    ),
    AchievementDefinition(
        slug="eco_enthusiast",
        name="Eco Enthusiast",
        description="Save 50 kg of carbon emissions",
        icon="\U0001f332",
        carbon_required=Decimal("50"),
    ),
    AchievementDefinition(
        slug="climate_champion",
        name="Climate Champion",
        description="Save 100 kg of carbon emissions",
        icon="\U0001f333",
        carbon_required=Decimal("100"),
    ),
    AchievementDefinition(
        slug="earth_guardian",
        name="Earth Guardian",
        description="Save 200 kg of carbon emissions",
        icon="\U0001f30d",
        carbon_required=Decimal("200"),
    ),
    AchievementDefinition(
        slug="climate_warrior",
        name="Climate Warrior",
        description="Save 500 kg of carbon emissions",
        icon="⚡",
        carbon_required=Decimal("500"),
    ),
    AchievementDefinition(
        slug="planetary_savior",
        name="Planetary Savior",
        description="Save 1000 kg of carbon emissions",
        icon="\U0001f320",
        carbon_required=Decimal("1000"),
    ),
]


async def seed_achievements(store: CarbonStore) -> int:
    """Upsert all achievement definitions by slug. Returns number seeded."""
    seeded = await store.upsert_achievements(ACHIEVEMENT_SEED_DATA)
    logger.info("Seeded %d achievement definitions", seeded)
    return seeded
