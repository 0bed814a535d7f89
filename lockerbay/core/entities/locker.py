from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from lockerbay.core.errors import InvalidTransition


class LockerStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    MAINTENANCE = "MAINTENANCE"


class LockerSize(str, Enum):
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"


LOCKER_TRANSITIONS: dict[LockerStatus, frozenset[LockerStatus]] = {
    LockerStatus.AVAILABLE: frozenset({LockerStatus.OCCUPIED, LockerStatus.MAINTENANCE}),
    LockerStatus.OCCUPIED: frozenset({LockerStatus.AVAILABLE}),
    LockerStatus.MAINTENANCE: frozenset({LockerStatus.AVAILABLE}),
}


def ensure_locker_transition(current: LockerStatus, target: LockerStatus) -> None:
    if target not in LOCKER_TRANSITIONS[current]:
        raise InvalidTransition(f"Locker cannot move from {current.value} to {target.value}")


@dataclass(slots=True)
class Locker:
    locker_id: str
    location_id: str
    size: LockerSize
    locker_code: str
    base_price: Decimal
    status: LockerStatus = LockerStatus.AVAILABLE
    location_active: bool = True


@dataclass(frozen=True, slots=True)
class SizeClass:
    size: LockerSize
    base_price: Decimal
    description: str | None = None
