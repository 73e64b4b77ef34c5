# tests/test_rates.py
from decimal import Decimal

import pytest

from inventory_service.rates import (
    EquipmentType,
    compute_daily_rate,
    is_rental_eligible,
)


@pytest.mark.parametrize(
    "equipment_type, expected",
    [
        ("SKI_BOARD", Decimal("6000.00")),
        ("BOOT", Decimal("5500.00")),
        ("HELMET", Decimal("4000.00")),
        ("POLE", Decimal("3000.00")),
        ("OTHER", Decimal("5000.00")),
        ("GOGGLE", Decimal("5000.00")),
    ],
)
def test_daily_rate_applies_category_multiplier(equipment_type, expected):
    assert compute_daily_rate(Decimal("50000"), equipment_type) == expected


def test_daily_rate_matches_float_expectation():
    assert compute_daily_rate(Decimal("50000"), "SKI_BOARD") == 6000.0


def test_unknown_type_falls_back_to_default_multiplier():
    assert compute_daily_rate(Decimal("50000"), "SNOWSHOE") == Decimal("5000.00")
    assert compute_daily_rate(Decimal("50000"), None) == Decimal("5000.00")


def test_enum_member_is_accepted_like_its_value():
    assert compute_daily_rate(Decimal("50000"), EquipmentType.BOOT) == Decimal("5500.00")


def test_daily_rate_is_rounded_to_cents():
    # 12345.67 * 0.10 * 1.1 = 1358.0237
    assert compute_daily_rate(Decimal("12345.67"), "BOOT") == Decimal("1358.02")


def test_missing_base_price_gives_zero_rate():
    assert compute_daily_rate(None, "SKI_BOARD") == Decimal("0.00")


@pytest.mark.parametrize("equipment_type", ["SKI_BOARD", "BOOT", "HELMET", "POLE", "GOGGLE", "OTHER"])
def test_wearable_and_usable_gear_is_rental_eligible(equipment_type):
    assert is_rental_eligible(equipment_type) is True


@pytest.mark.parametrize("equipment_type", ["WAX", "TUNING"])
def test_consumables_are_not_rental_eligible(equipment_type):
    assert is_rental_eligible(equipment_type) is False


def test_eligibility_is_a_closed_set():
    assert is_rental_eligible("SNOWSHOE") is False
    assert is_rental_eligible(None) is False
