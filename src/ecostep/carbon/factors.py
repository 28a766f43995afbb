"""Emission factor model.

Factors are kg CO2e per unit of quantity:
  transport  per km
  waste      per kg
  diet       per meal
  energy     per kWh

The table only holds non-negative values. Substitute activity types (bike
instead of car, vegan instead of meat, ...) report their impact relative to
the category baseline, which makes a cleaner choice negative. That sign
convention lives in estimate_impact(), not in the table.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from ecostep.errors import UnknownTypeError


class Category(str, Enum):
    TRANSPORT = "transport"
    WASTE = "waste"
    DIET = "diet"
    ENERGY = "energy"


class TransportType(str, Enum):
    CAR = "car"
    BUS = "bus"
    TRAIN = "train"
    FLIGHT = "flight"
    BIKE = "bike"
    WALK = "walk"


class WasteType(str, Enum):
    GENERAL = "general"
    RECYCLABLE = "recyclable"
    BIODEGRADABLE = "biodegradable"
    COMPOST = "compost"


class DietType(str, Enum):
    MEAT = "meat"
    FISH = "fish"
    VEGETARIAN = "vegetarian"
    VEGAN = "vegan"


class EnergyType(str, Enum):
    FOSSIL = "fossil"
    MIXED = "mixed"
    RENEWABLE = "renewable"
    SAVED = "saved"


ACTIVITY_TYPES: dict[Category, type[Enum]] = {
    Category.TRANSPORT: TransportType,
    Category.WASTE: WasteType,
    Category.DIET: DietType,
    Category.ENERGY: EnergyType,
}

EMISSION_FACTORS: dict[Category, dict[Enum, Decimal]] = {
    Category.TRANSPORT: {
        TransportType.CAR: Decimal("0.12"),
        TransportType.BUS: Decimal("0.05"),
        TransportType.TRAIN: Decimal("0.03"),
        TransportType.FLIGHT: Decimal("0.15"),
        TransportType.BIKE: Decimal("0"),
        TransportType.WALK: Decimal("0"),
    },
    Category.WASTE: {
        WasteType.GENERAL: Decimal("2.5"),
        WasteType.RECYCLABLE: Decimal("1.0"),
        WasteType.BIODEGRADABLE: Decimal("0.8"),
        WasteType.COMPOST: Decimal("0.2"),
    },
    Category.DIET: {
        DietType.MEAT: Decimal("3.0"),
        DietType.FISH: Decimal("1.5"),
        DietType.VEGETARIAN: Decimal("1.0"),
        DietType.VEGAN: Decimal("0.5"),
    },
    Category.ENERGY: {
        EnergyType.FOSSIL: Decimal("0.5"),
        EnergyType.MIXED: Decimal("0.3"),
        EnergyType.RENEWABLE: Decimal("0.1"),
        EnergyType.SAVED: Decimal("0"),
    },
}

# Higher-emission activity each substitute is measured against.
BASELINES: dict[Category, Enum] = {
    Category.TRANSPORT: TransportType.CAR,
    Category.WASTE: WasteType.GENERAL,
    Category.DIET: DietType.MEAT,
    Category.ENERGY: EnergyType.FOSSIL,
}

SUBSTITUTES: frozenset[Enum] = frozenset({
    TransportType.BIKE,
    TransportType.WALK,
    WasteType.RECYCLABLE,
    WasteType.BIODEGRADABLE,
    WasteType.COMPOST,
    DietType.VEGETARIAN,
    DietType.VEGAN,
    DietType.FISH,
    EnergyType.RENEWABLE,
    EnergyType.MIXED,
    EnergyType.SAVED,
})


def _verify_tables() -> None:
    """Fail at import if any category or activity type lacks a factor or baseline."""
    for category in Category:
        enum_cls = ACTIVITY_TYPES.get(category)
        if enum_cls is None:
            raise RuntimeError(f"No activity types declared for {category.value}")
        factors = EMISSION_FACTORS.get(category, {})
        missing = [member.value for member in enum_cls if member not in factors]
        if missing:
            raise RuntimeError(f"Missing emission factors for {category.value}: {missing}")
        if any(value < 0 for value in factors.values()):
            raise RuntimeError(f"Negative emission factor in {category.value}")
        baseline = BASELINES.get(category)
        if baseline is None or baseline not in factors or baseline in SUBSTITUTES:
            raise RuntimeError(f"Invalid baseline for {category.value}")


_verify_tables()


def resolve_category(category: str | Category) -> Category:
    try:
        return Category(category)
    except ValueError:
        raise UnknownTypeError(f"Unknown category: {category!r}") from None


def resolve_activity(category: str | Category, activity_type: str | Enum) -> tuple[Category, Enum]:
    """Map raw strings onto the enumerated model or raise UnknownTypeError."""
    cat = resolve_category(category)

    enum_cls = ACTIVITY_TYPES[cat]
    raw = activity_type.value if isinstance(activity_type, Enum) else activity_type
    try:
        kind = enum_cls(raw)
    except ValueError:
        raise UnknownTypeError(
            f"Unknown activity type {raw!r} for category {cat.value!r}"
        ) from None
    return cat, kind


def emission_factor(category: str | Category, activity_type: str | Enum) -> Decimal:
    """Look up the kg CO2e per unit factor for a category/type pair."""
    cat, kind = resolve_activity(category, activity_type)
    return EMISSION_FACTORS[cat][kind]


def compute_impact(category: str | Category, activity_type: str | Enum, quantity: Decimal) -> Decimal:
    """Return factor * quantity for the given activity. Linear and side-effect free."""
    return emission_factor(category, activity_type) * Decimal(quantity)


def is_substitute(category: str | Category, activity_type: str | Enum) -> bool:
    """True when the activity type is a cleaner substitute for its category baseline."""
    _, kind = resolve_activity(category, activity_type)
    return kind in SUBSTITUTES


def baseline_impact(category: str | Category, quantity: Decimal) -> Decimal:
    """Emissions of the category baseline for the same quantity."""
    cat = resolve_category(category)
    return compute_impact(cat, BASELINES[cat], quantity)


def estimate_impact(category: str | Category, activity_type: str | Enum, quantity: Decimal) -> Decimal:
    """Reported impact using the baseline substitution convention.

    Substitutes report actual - baseline (negative when cleaner); every other
    type reports its plain emissions.
    """
    actual = compute_impact(category, activity_type, quantity)
    if is_substitute(category, activity_type):
        return actual - baseline_impact(category, quantity)
    return actual
