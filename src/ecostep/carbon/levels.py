"""Level derivation from accumulated carbon saved.

Level = min(10, floor(total / 100) + 1). Dashboards render the same
thresholds, so keep CARBON_PER_LEVEL and MAX_LEVEL in sync with the frontend.
"""

from __future__ import annotations

from decimal import Decimal

CARBON_PER_LEVEL = Decimal("100")
MAX_LEVEL = 10

# Equivalence divisors shown on the profile page.
KG_PER_TREE = Decimal("20")
MILES_PER_KG = Decimal("2.5")
KG_PER_ENERGY_DAY = Decimal("10")


def compute_level(total_saved: Decimal) -> int:
    """Level for a non-negative carbon total."""
    total = max(Decimal(total_saved), Decimal(0))
    return min(MAX_LEVEL, int(total // CARBON_PER_LEVEL) + 1)


def level_info(total_saved: Decimal) -> dict:
    """Compute level progress from the accumulated total.

    At max level carbon_for_level stays at one level's width and next_level
    stays at MAX_LEVEL.
    """
    total = max(Decimal(total_saved), Decimal(0))
    level = compute_level(total)
    level_floor = CARBON_PER_LEVEL * (level - 1)

    return {
        "level": level,
        "carbon_into_level": total - level_floor,
        "carbon_for_level": CARBON_PER_LEVEL,
        "next_level": min(MAX_LEVEL, level + 1),
    }


def carbon_equivalents(total_saved: Decimal) -> dict:
    """Whole-number everyday equivalents of the carbon saved."""
    total = max(Decimal(total_saved), Decimal(0))
    return {
        "trees_planted": int(total // KG_PER_TREE),
        "car_miles_avoided": int(total * MILES_PER_KG),
        "energy_days": int(total // KG_PER_ENERGY_DAY),
    }
