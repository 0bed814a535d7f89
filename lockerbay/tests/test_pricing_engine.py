from __future__ import annotations

from decimal import Decimal

import pytest

from lockerbay.core.errors import InvalidInputError
from lockerbay.core.use_cases import pricing_engine


@pytest.mark.parametrize(
    "hours, expected",
    [
        (1, 1),
        (3, 3),
        (0.1, 1),
        (1.01, 2),
        (2.5, 3),
    ],
)
def test_started_hours_are_billed_in_full(hours: float, expected: int) -> None:
    assert pricing_engine.billable_hours(hours) == expected


def test_initial_cost_is_base_price_times_billable_hours() -> None:
    assert pricing_engine.initial_cost(Decimal("10.00"), 3) == Decimal("30.00")
    assert pricing_engine.initial_cost(Decimal("10.00"), 2.5) == Decimal("30.00")
    assert pricing_engine.initial_cost(Decimal("7.35"), 2) == Decimal("14.70")


def test_extension_cost_matches_initial_cost_for_same_hours() -> None:
    assert pricing_engine.extension_cost(Decimal("10.00"), 2) == Decimal("20.00")
    assert pricing_engine.extension_cost(Decimal("15.00"), 0.5) == Decimal("15.00")


def test_costs_are_rounded_to_cents() -> None:
    cost = pricing_engine.initial_cost(Decimal("3.333"), 1)
    assert cost == Decimal("3.33")
    assert cost.as_tuple().exponent == -2


@pytest.mark.parametrize("hours", [0, -1, -0.5, float("nan"), float("inf"), None, "3", True])
def test_invalid_hours_are_rejected(hours) -> None:
    with pytest.raises(InvalidInputError):
        pricing_engine.billable_hours(hours)


def test_hours_above_the_limit_are_rejected() -> None:
    assert pricing_engine.billable_hours(168, max_hours=168) == 168

    with pytest.raises(InvalidInputError, match="168"):
        pricing_engine.billable_hours(168.5, max_hours=168)
    with pytest.raises(InvalidInputError):
        pricing_engine.billable_hours(1e30, max_hours=168)
