from __future__ import annotations

from abc import ABC, abstractmethod

from lockerbay.core.entities.reservation_history import ReservationHistoryRecord


class ReservationHistoryRepository(ABC):
    @abstractmethod
    def append(self, record: ReservationHistoryRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_by_reservation(self, reservation_id: str) -> ReservationHistoryRecord | None:
        raise NotImplementedError
