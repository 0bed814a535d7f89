from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from lockerbay.core.entities.locker import Locker, LockerSize, LockerStatus, ensure_locker_transition
from lockerbay.core.entities.location import Location
from lockerbay.core.errors import ConflictError, NotFoundError, ResourceUnavailableError
from lockerbay.core.repositories.location_repository import LocationRepository
from lockerbay.core.repositories.locker_repository import LockerRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LocationAvailability:
    location: Location
    available_count: int
    available_by_size: dict[LockerSize, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SizeAvailability:
    size: LockerSize
    base_price: Decimal
    description: str | None
    lockers: list[Locker]

    @property
    def available_count(self) -> int:
        return len(self.lockers)


@dataclass(frozen=True, slots=True)
class LocationDetails:
    location: Location
    sizes: list[SizeAvailability]


class ResourceRegistry:
    """
    Locker inventory and status transitions.

    Lockers at a deactivated location are never offered and cannot be claimed. Every mutating
    call runs inside the caller's unit of work; nothing here commits.
    """

    def __init__(self, *, locker_repo: LockerRepository, location_repo: LocationRepository) -> None:
        self._locker_repo = locker_repo
        self._location_repo = location_repo

    def get(self, locker_id: str) -> Locker:
        locker = self._locker_repo.get(locker_id)
        if locker is None:
            raise NotFoundError("Locker not found")
        return locker

    def find_available(self, *, location_id: str | None = None, size: LockerSize | None = None) -> list[str]:
        lockers = self._locker_repo.find_available(location_id=location_id, size=size)
        return [locker.locker_id for locker in lockers]

    def list_locations(self) -> list[LocationAvailability]:
        counts = self._location_repo.count_available()
        result = []
        for location in self._location_repo.list_active():
            by_size = counts.get(location.location_id, {})
            result.append(
                LocationAvailability(
                    location=location,
                    available_count=sum(by_size.values()),
                    available_by_size=dict(by_size),
                )
            )
        return result

    def location_details(self, location_id: str) -> LocationDetails:
        location = self._location_repo.get_active(location_id)
        if location is None:
            raise NotFoundError("Location not found")

        available = self._locker_repo.find_available(location_id=location_id)
        sizes = [
            SizeAvailability(
                size=size_class.size,
                base_price=size_class.base_price,
                description=size_class.description,
                lockers=[locker for locker in available if locker.size is size_class.size],
            )
            for size_class in self._locker_repo.list_size_classes()
        ]
        return LocationDetails(location=location, sizes=sizes)

    def try_mark_occupied(self, locker_id: str) -> Locker:
        """
        Claim the locker for the enclosing transaction.

        The status re-check, the location check and the write are one conditional update, so
        of any number of concurrent callers at most one sees True.
        """
        claimed = self._locker_repo.claim(locker_id)
        locker = self._locker_repo.get(locker_id)
        if locker is None:
            raise NotFoundError("Locker not found")
        if not claimed:
            if not locker.location_active:
                raise ResourceUnavailableError(f"Locker {locker_id!r} is at an inactive location")
            raise ResourceUnavailableError(f"Locker {locker_id!r} is {locker.status.value}")

        logger.info("Locker %s marked OCCUPIED", locker_id)
        return locker

    def mark_available(self, locker_id: str) -> None:
        if not self._locker_repo.set_status(locker_id, LockerStatus.AVAILABLE):
            raise NotFoundError("Locker not found")
        logger.info("Locker %s marked AVAILABLE", locker_id)

    def set_maintenance(self, locker_id: str, *, enabled: bool) -> Locker:
        locker = self.get(locker_id)
        target = LockerStatus.MAINTENANCE if enabled else LockerStatus.AVAILABLE
        ensure_locker_transition(locker.status, target)

        if not self._locker_repo.transition_status(locker_id, from_status=locker.status, to_status=target):
            raise ConflictError(f"Locker {locker_id!r} changed status concurrently")

        locker.status = target
        logger.info("Locker %s marked %s", locker_id, target.value)
        return locker
