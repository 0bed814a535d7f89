from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from lockerbay.core.errors import InvalidTransition


class ReservationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


RESERVATION_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.ACTIVE: frozenset({ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}


@dataclass(slots=True)
class Reservation:
    reservation_id: str
    user_id: str
    locker_id: str
    start_time: datetime
    expected_end_time: datetime
    total_cost: Decimal
    access_code: str
    status: ReservationStatus = ReservationStatus.ACTIVE
    extended_end_time: datetime | None = None
    actual_end_time: datetime | None = None
    extension_cost: Decimal = Decimal("0.00")
    extension_count: int = 0
    version: int = 1

    @property
    def is_active(self) -> bool:
        return self.status is ReservationStatus.ACTIVE

    @property
    def end_time(self) -> datetime:
        """Current scheduled end: the extended end when present, else the expected one."""
        if self.extended_end_time is None:
            return self.expected_end_time
        return max(self.extended_end_time, self.expected_end_time)

    def extend(self, *, additional_hours: float, additional_cost: Decimal) -> datetime:
        if not self.is_active:
            raise InvalidTransition(
                f"Cannot extend reservation {self.reservation_id!r} in status {self.status.value!r}"
            )
        self.extended_end_time = self.end_time + timedelta(hours=additional_hours)
        self.extension_cost += additional_cost
        self.total_cost += additional_cost
        self.extension_count += 1
        return self.extended_end_time

    def complete(self, now: datetime) -> None:
        self._transition_to(ReservationStatus.COMPLETED)
        self.actual_end_time = now

    def cancel(self, now: datetime) -> None:
        self._transition_to(ReservationStatus.CANCELLED)
        self.actual_end_time = now

    def _transition_to(self, target: ReservationStatus) -> None:
        if target not in RESERVATION_TRANSITIONS[self.status]:
            raise InvalidTransition(
                f"Reservation {self.reservation_id!r} cannot move from {self.status.value} to {target.value}"
            )
        self.status = target
