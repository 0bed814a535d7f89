from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from lockerbay.core.entities.reservation import Reservation, ReservationStatus
from lockerbay.core.repositories.reservation_repository import ReservationRepository
from lockerbay.infrastructure.models.models import ReservationModel


class ReservationRepositoryImpl(ReservationRepository):
    def __init__(self, db: Session):
        self.db = db

    def get(self, reservation_id: str) -> Reservation | None:
        return self._get(reservation_id, for_update=False)

    def get_for_update(self, reservation_id: str) -> Reservation | None:
        return self._get(reservation_id, for_update=True)

    def add(self, reservation: Reservation) -> None:
        self.db.add(
            ReservationModel(
                reservation_id=reservation.reservation_id,
                user_id=reservation.user_id,
                locker_id=reservation.locker_id,
                start_time=reservation.start_time,
                expected_end_time=reservation.expected_end_time,
                extended_end_time=reservation.extended_end_time,
                actual_end_time=reservation.actual_end_time,
                status=reservation.status,
                total_cost=reservation.total_cost,
                extension_cost=reservation.extension_cost,
                extension_count=reservation.extension_count,
                access_code=reservation.access_code,
                version=reservation.version,
            )
        )
        self.db.flush()

    def save_if_version(self, reservation: Reservation, *, expected_version: int) -> bool:
        stmt = (
            update(ReservationModel)
            .where(ReservationModel.reservation_id == reservation.reservation_id)
            .where(ReservationModel.version == expected_version)
            .values(
                status=reservation.status,
                extended_end_time=reservation.extended_end_time,
                actual_end_time=reservation.actual_end_time,
                total_cost=reservation.total_cost,
                extension_cost=reservation.extension_cost,
                extension_count=reservation.extension_count,
                version=expected_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def access_code_in_use(self, access_code: str) -> bool:
        stmt = (
            select(ReservationModel.reservation_id)
            .where(ReservationModel.access_code == access_code)
            .where(ReservationModel.status == ReservationStatus.ACTIVE)
            .limit(1)
        )
        return self.db.execute(stmt).first() is not None

    def list_for_user(self, user_id: str, *, status: ReservationStatus | None = None) -> list[Reservation]:
        stmt = select(ReservationModel).where(ReservationModel.user_id == user_id)
        if status is not None:
            stmt = stmt.where(ReservationModel.status == status)
        stmt = stmt.order_by(ReservationModel.start_time.desc()).execution_options(populate_existing=True)

        return [self._to_entity(row) for row in self.db.execute(stmt).scalars()]

    def _get(self, reservation_id: str, *, for_update: bool) -> Reservation | None:
        stmt = select(ReservationModel).where(ReservationModel.reservation_id == reservation_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = self.db.execute(stmt.execution_options(populate_existing=True)).scalar_one_or_none()
        if row is None:
            return None
        return self._to_entity(row)

    @staticmethod
    def _to_entity(row: ReservationModel) -> Reservation:
        return Reservation(
            reservation_id=row.reservation_id,
            user_id=row.user_id,
            locker_id=row.locker_id,
            start_time=row.start_time,
            expected_end_time=row.expected_end_time,
            extended_end_time=row.extended_end_time,
            actual_end_time=row.actual_end_time,
            status=ReservationStatus(row.status) if not isinstance(row.status, ReservationStatus) else row.status,
            total_cost=row.total_cost,
            extension_cost=row.extension_cost,
            extension_count=row.extension_count,
            access_code=row.access_code,
            version=row.version,
        )
