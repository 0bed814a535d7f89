from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from lockerbay.core.entities.reservation_history import ReservationHistoryRecord
from lockerbay.core.repositories.reservation_history_repository import ReservationHistoryRepository
from lockerbay.infrastructure.models.models import ReservationHistoryModel


class ReservationHistoryRepositoryImpl(ReservationHistoryRepository):
    """Append-only: records are inserted once and never updated."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def append(self, record: ReservationHistoryRecord) -> None:
        self._db.add(
            ReservationHistoryModel(
                history_id=record.history_id,
                reservation_id=record.reservation_id,
                start_time=record.start_time,
                end_time=record.end_time,
                total_hours=record.total_hours,
                total_cost=record.total_cost,
            )
        )
        self._db.flush()

    def get_by_reservation(self, reservation_id: str) -> ReservationHistoryRecord | None:
        stmt = select(ReservationHistoryModel).where(ReservationHistoryModel.reservation_id == reservation_id)
        row = self._db.execute(stmt).scalar_one_or_none()
        if row is None:
            return None

        return ReservationHistoryRecord(
            history_id=row.history_id,
            reservation_id=row.reservation_id,
            start_time=row.start_time,
            end_time=row.end_time,
            total_hours=row.total_hours,
            total_cost=row.total_cost,
        )
