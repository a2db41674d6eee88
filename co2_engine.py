"""
co2_engine.py

Converts logged activities into CO₂ estimates.

- EMISSION_FACTORS maps an activity type to kg CO₂ per unit (km, kWh or meal).
- calculate_emission(type, value) returns the rounded emission for one activity.
- ACTIVITY_OPTIONS lists, per category, the types a user can log and their units.

Notes for readers:
- The table is read-only. Changing a factor only affects activities saved
  afterwards; stored emissions are never recalculated.
- Unknown types are not an error: they simply have a factor of 0.
- Pass a different mapping as `factors` to calculate with another table.
"""

import math
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from errors import InvalidArgumentError

CATEGORIES = ("transport", "energy", "diet", "other")

# Emission factors in kg CO₂ per unit.
EMISSION_FACTORS: Mapping[str, float] = MappingProxyType({
    # Transport (per km)
    "car_petrol": 0.12,
    "car_diesel": 0.14,
    "car_electric": 0.05,
    "bus": 0.05,
    "train": 0.03,
    "flight_short": 0.255,
    "flight_long": 0.195,
    "bicycle": 0.0,
    "walking": 0.0,

    # Energy (per kWh)
    "electricity": 0.5,
    "natural_gas": 0.2,
    "heating_oil": 0.27,

    # Diet (per meal)
    "beef": 6.0,
    "pork": 3.5,
    "chicken": 2.5,
    "fish": 2.0,
    "vegetarian": 1.5,
    "vegan": 0.9,
})

ACTIVITY_LABELS: Mapping[str, str] = MappingProxyType({
    "car_petrol": "Car (Petrol)",
    "car_diesel": "Car (Diesel)",
    "car_electric": "Electric Car",
    "bus": "Bus",
    "train": "Train",
    "flight_short": "Flight (Short-haul)",
    "flight_long": "Flight (Long-haul)",
    "bicycle": "Bicycle",
    "walking": "Walking",
    "electricity": "Electricity",
    "natural_gas": "Natural Gas",
    "heating_oil": "Heating Oil",
    "beef": "Beef Meal",
    "pork": "Pork Meal",
    "chicken": "Chicken Meal",
    "fish": "Fish Meal",
    "vegetarian": "Vegetarian Meal",
    "vegan": "Vegan Meal",
})

CATEGORY_LABELS: Mapping[str, str] = MappingProxyType({
    "transport": "Transportation",
    "energy": "Energy",
    "diet": "Diet",
    "other": "Other",
})

CATEGORY_COLORS: Mapping[str, str] = MappingProxyType({
    "transport": "#3b82f6",
    "energy": "#f59e0b",
    "diet": "#10b981",
    "other": "#8b5cf6",
})

# Activity types per category with the unit their value is measured in.
# "other" has no predefined types; anything logged there counts as 0 kg.
ACTIVITY_OPTIONS: Mapping[str, Dict[str, str]] = MappingProxyType({
    "transport": {
        "car_petrol": "km",
        "car_diesel": "km",
        "car_electric": "km",
        "bus": "km",
        "train": "km",
        "flight_short": "km",
        "flight_long": "km",
        "bicycle": "km",
        "walking": "km",
    },
    "energy": {
        "electricity": "kWh",
        "natural_gas": "kWh",
        "heating_oil": "kWh",
    },
    "diet": {
        "beef": "meals",
        "pork": "meals",
        "chicken": "meals",
        "fish": "meals",
        "vegetarian": "meals",
        "vegan": "meals",
    },
    "other": {},
})


def round2(x: float) -> float:
    """Round to 2 decimals, halves rounded up (same as Math.round(x * 100) / 100).

    Non-finite input raises InvalidArgumentError instead of producing NaN.
    """
    if not math.isfinite(x):
        raise InvalidArgumentError(f"cannot round non-finite value {x!r}")
    return math.floor(x * 100 + 0.5) / 100


def get_factor(activity_type: str, factors: Optional[Mapping[str, float]] = None) -> float:
    """Return kg CO₂ per unit for a type, 0 for anything not in the table."""
    table = EMISSION_FACTORS if factors is None else factors
    return float(table.get(activity_type, 0.0))


def calculate_emission(
    activity_type: str,
    value: float,
    factors: Optional[Mapping[str, float]] = None,
) -> float:
    """
    Calculate the CO₂ emission of a single activity.

    Parameters
    - activity_type: key of the factor table, e.g. "car_petrol".
    - value: quantity in the type's unit. Callers reject value <= 0 before this point.
    - factors: alternate factor table; defaults to EMISSION_FACTORS.

    Returns
    - Emission in kg CO₂ rounded to 2 decimals.

    Behavior
    - Unknown types yield 0.
    - Non-numeric or non-finite values raise InvalidArgumentError.
    """
    if isinstance(value, bool):
        raise InvalidArgumentError(f"value must be a number, got {value!r}")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"value must be a number, got {value!r}") from None
    if not math.isfinite(amount):
        raise InvalidArgumentError(f"value must be finite, got {value!r}")

    return round2(get_factor(activity_type, factors) * amount)


def category_for_type(activity_type: str) -> str:
    """Return the category an activity type is listed under, "other" if none."""
    for category, options in ACTIVITY_OPTIONS.items():
        if activity_type in options:
            return category
    return "other"


def unit_for_type(activity_type: str) -> str:
    """Unit label for a known type, empty string otherwise."""
    return ACTIVITY_OPTIONS[category_for_type(activity_type)].get(activity_type, "")


def activity_choices(category: str) -> List[str]:
    """Types a user can pick for a category, in display order."""
    return list(ACTIVITY_OPTIONS.get(category, {}))
