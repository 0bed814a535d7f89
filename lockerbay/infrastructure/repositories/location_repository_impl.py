from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lockerbay.core.entities.locker import LockerSize, LockerStatus
from lockerbay.core.entities.location import Location
from lockerbay.core.repositories.location_repository import LocationRepository
from lockerbay.infrastructure.models.models import LocationModel, LockerModel


class LocationRepositoryImpl(LocationRepository):
    def __init__(self, db: Session) -> None:
        self._db = db

    def get_active(self, location_id: str) -> Location | None:
        stmt = (
            select(LocationModel)
            .where(LocationModel.location_id == location_id)
            .where(LocationModel.is_active)
            .execution_options(populate_existing=True)
        )
        row = self._db.execute(stmt).unique().scalar_one_or_none()
        if row is None:
            return None
        return self._to_entity(row)

    def list_active(self) -> list[Location]:
        stmt = (
            select(LocationModel)
            .where(LocationModel.is_active)
            .order_by(LocationModel.popularity_score.desc(), LocationModel.name)
            .execution_options(populate_existing=True)
        )
        return [self._to_entity(row) for row in self._db.execute(stmt).unique().scalars()]

    def count_available(self) -> dict[str, dict[LockerSize, int]]:
        stmt = (
            select(LockerModel.location_id, LockerModel.size, func.count(LockerModel.locker_id))
            .join(LocationModel, LocationModel.location_id == LockerModel.location_id)
            .where(LocationModel.is_active)
            .where(LockerModel.status == LockerStatus.AVAILABLE)
            .group_by(LockerModel.location_id, LockerModel.size)
        )
        counts: dict[str, dict[LockerSize, int]] = {}
        for location_id, size, count in self._db.execute(stmt):
            counts.setdefault(location_id, {})[size] = count
        return counts

    @staticmethod
    def _to_entity(row: LocationModel) -> Location:
        return Location(
            location_id=row.location_id,
            name=row.name,
            address=row.address,
            latitude=row.latitude,
            longitude=row.longitude,
            popularity_score=row.popularity_score,
            is_active=row.is_active,
        )
