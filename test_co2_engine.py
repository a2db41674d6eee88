import math
import pytest

from co2_engine import (
    ACTIVITY_OPTIONS,
    CATEGORY_COLORS,
    CATEGORIES,
    EMISSION_FACTORS,
    activity_choices,
    calculate_emission,
    category_for_type,
    round2,
    unit_for_type,
)
from errors import InvalidArgumentError


def test_calculate_emission_known_types():
    assert calculate_emission("beef", 2) == 12.00
    assert calculate_emission("car_petrol", 10) == 1.2
    assert calculate_emission("electricity", 5) == 2.5
    assert calculate_emission("natural_gas", 12.5) == 2.5


def test_calculate_emission_zero_factor_types():
    assert calculate_emission("bicycle", 100) == 0
    assert calculate_emission("walking", 12.5) == 0


@pytest.mark.parametrize("activity_type", ["UNKNOWN_ACTIVITY", "", "Car Petrol", "scooter"])
def test_calculate_emission_unknown_type_is_zero(activity_type):
    assert calculate_emission(activity_type, 42) == 0


def test_calculate_emission_uses_injected_table():
    table = {"car_petrol": 0.2, "tram": 0.01}
    assert calculate_emission("car_petrol", 10, factors=table) == 2.0
    assert calculate_emission("tram", 150, factors=table) == 1.5
    # The default table is not consulted when another one is passed
    assert calculate_emission("beef", 1, factors=table) == 0


@pytest.mark.parametrize("value", [float("nan"), float("inf"), "abc", None, True])
def test_calculate_emission_rejects_unusable_values(value):
    with pytest.raises(InvalidArgumentError):
        calculate_emission("beef", value)


def test_factor_table_is_read_only():
    with pytest.raises(TypeError):
        EMISSION_FACTORS["beef"] = 1.0
    assert EMISSION_FACTORS["beef"] == 6.0


def test_round2_half_up_and_non_finite():
    assert round2(0.125) == 0.13
    assert round2(1.0049) == 1.0
    assert math.isclose(round2(2.675000001), 2.68)
    with pytest.raises(InvalidArgumentError):
        round2(float("nan"))


def test_every_option_has_a_factor():
    for category, options in ACTIVITY_OPTIONS.items():
        assert category in CATEGORIES
        for activity_type in options:
            assert activity_type in EMISSION_FACTORS


def test_category_and_unit_lookup():
    assert category_for_type("train") == "transport"
    assert category_for_type("natural_gas") == "energy"
    assert category_for_type("vegan") == "diet"
    assert category_for_type("mystery") == "other"
    assert unit_for_type("electricity") == "kWh"
    assert unit_for_type("pork") == "meals"
    assert unit_for_type("mystery") == ""


def test_activity_choices_follow_option_order():
    assert activity_choices("energy") == ["electricity", "natural_gas", "heating_oil"]
    assert activity_choices("diet")[0] == "beef"
    assert activity_choices("other") == []
    assert activity_choices("travel") == []


def test_every_category_has_a_colour():
    assert set(CATEGORY_COLORS) == set(CATEGORIES)
    assert all(colour.startswith("#") and len(colour) == 7 for colour in CATEGORY_COLORS.values())
