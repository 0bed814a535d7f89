from __future__ import annotations

from abc import ABC, abstractmethod

from lockerbay.core.entities.locker import LockerSize
from lockerbay.core.entities.location import Location


class LocationRepository(ABC):
    @abstractmethod
    def get_active(self, location_id: str) -> Location | None:
        """Active location, or None if it is missing or deactivated."""
        raise NotImplementedError

    @abstractmethod
    def list_active(self) -> list[Location]:
        """Active locations, most popular first, then by name."""
        raise NotImplementedError

    @abstractmethod
    def count_available(self) -> dict[str, dict[LockerSize, int]]:
        """AVAILABLE lockers per active location and size. Locations without any are absent."""
        raise NotImplementedError
