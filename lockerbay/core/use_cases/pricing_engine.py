"""
Cost computation for reservations. Pure functions, no I/O.

Billing granularity is whole hours: any started hour is charged in full, there is no proration.
"""
from __future__ import annotations

import math
from decimal import Decimal

from lockerbay.core.errors import InvalidInputError

_CENTS = Decimal("0.01")


def billable_hours(hours: float, *, max_hours: float | None = None) -> int:
    if isinstance(hours, bool) or not isinstance(hours, (int, float, Decimal)):
        raise InvalidInputError("hours must be a number")
    if not math.isfinite(hours) or hours <= 0:
        raise InvalidInputError("hours must be a positive, finite number")
    if max_hours is not None and hours > max_hours:
        raise InvalidInputError(f"hours must not exceed {max_hours:g}")
    return math.ceil(hours)


def initial_cost(base_price: Decimal, duration_hours: float) -> Decimal:
    return (Decimal(base_price) * billable_hours(duration_hours)).quantize(_CENTS)


def extension_cost(base_price: Decimal, additional_hours: float) -> Decimal:
    return (Decimal(base_price) * billable_hours(additional_hours)).quantize(_CENTS)
