from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from lockerbay.core.entities.locker import Locker, LockerSize, LockerStatus, SizeClass
from lockerbay.core.repositories.locker_repository import LockerRepository
from lockerbay.infrastructure.models.models import LocationModel, LockerModel, LockerSizeModel


class LockerRepositoryImpl(LockerRepository):
    """
    SQLAlchemy implementation for Locker.

    Status changes are single UPDATE statements guarded by the expected current status, so the
    check and the write cannot be separated by another transaction.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def get(self, locker_id: str) -> Locker | None:
        stmt = (
            select(LockerModel)
            .where(LockerModel.locker_id == locker_id)
            .execution_options(populate_existing=True)
        )
        row = self._db.execute(stmt).unique().scalar_one_or_none()
        if row is None:
            return None
        return self._to_entity(row)

    def find_available(self, *, location_id: str | None = None, size: LockerSize | None = None) -> list[Locker]:
        stmt = (
            select(LockerModel)
            .join(LocationModel, LocationModel.location_id == LockerModel.location_id)
            .where(LockerModel.status == LockerStatus.AVAILABLE)
            .where(LocationModel.is_active)
        )
        if location_id is not None:
            stmt = stmt.where(LockerModel.location_id == location_id)
        if size is not None:
            stmt = stmt.where(LockerModel.size == size)
        stmt = stmt.order_by(LockerModel.locker_code).execution_options(populate_existing=True)

        return [self._to_entity(row) for row in self._db.execute(stmt).unique().scalars()]

    def list_size_classes(self) -> list[SizeClass]:
        rows = self._db.execute(select(LockerSizeModel).order_by(LockerSizeModel.size)).scalars()
        return [SizeClass(size=row.size, base_price=row.base_price, description=row.description) for row in rows]

    def claim(self, locker_id: str) -> bool:
        active_locations = select(LocationModel.location_id).where(LocationModel.is_active)
        stmt = (
            update(LockerModel)
            .where(LockerModel.locker_id == locker_id)
            .where(LockerModel.status == LockerStatus.AVAILABLE)
            .where(LockerModel.location_id.in_(active_locations))
            .values(status=LockerStatus.OCCUPIED)
            .execution_options(synchronize_session=False)
        )
        return self._db.execute(stmt).rowcount == 1

    def transition_status(self, locker_id: str, *, from_status: LockerStatus, to_status: LockerStatus) -> bool:
        stmt = (
            update(LockerModel)
            .where(LockerModel.locker_id == locker_id)
            .where(LockerModel.status == from_status)
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        return self._db.execute(stmt).rowcount == 1

    def set_status(self, locker_id: str, status: LockerStatus) -> bool:
        stmt = (
            update(LockerModel)
            .where(LockerModel.locker_id == locker_id)
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        return self._db.execute(stmt).rowcount == 1

    @staticmethod
    def _to_entity(row: LockerModel) -> Locker:
        return Locker(
            locker_id=row.locker_id,
            location_id=row.location_id,
            size=row.size,
            locker_code=row.locker_code,
            base_price=row.size_class.base_price,
            status=row.status,
            location_active=row.location.is_active,
        )
