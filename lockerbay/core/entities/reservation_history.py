from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from lockerbay.core.entities.reservation import Reservation


@dataclass(frozen=True, slots=True)
class ReservationHistoryRecord:
    """
    Immutable summary appended when a reservation completes.
    """
    history_id: str
    reservation_id: str
    start_time: datetime
    end_time: datetime
    total_hours: int
    total_cost: Decimal

    @classmethod
    def from_completed(cls, history_id: str, reservation: Reservation) -> ReservationHistoryRecord:
        if reservation.actual_end_time is None:
            raise ValueError("History can only be recorded for a reservation with an actual end time")

        elapsed = (reservation.actual_end_time - reservation.start_time).total_seconds()
        return cls(
            history_id=history_id,
            reservation_id=reservation.reservation_id,
            start_time=reservation.start_time,
            end_time=reservation.actual_end_time,
            total_hours=max(0, math.ceil(elapsed / 3600)),
            total_cost=reservation.total_cost,
        )
