from __future__ import annotations

from abc import ABC, abstractmethod

from lockerbay.core.entities.locker import Locker, LockerSize, LockerStatus, SizeClass


class LockerRepository(ABC):
    @abstractmethod
    def get(self, locker_id: str) -> Locker | None:
        """Locker with the base price of its size class, or None if missing."""
        raise NotImplementedError

    @abstractmethod
    def find_available(self, *, location_id: str | None = None, size: LockerSize | None = None) -> list[Locker]:
        """AVAILABLE lockers at active locations."""
        raise NotImplementedError

    @abstractmethod
    def list_size_classes(self) -> list[SizeClass]:
        raise NotImplementedError

    @abstractmethod
    def claim(self, locker_id: str) -> bool:
        """
        AVAILABLE -> OCCUPIED, only while the locker's location is active.
        Returns True only if this call made the change. Atomic with the enclosing transaction.
        """
        raise NotImplementedError

    @abstractmethod
    def transition_status(self, locker_id: str, *, from_status: LockerStatus, to_status: LockerStatus) -> bool:
        """
        Conditional status change. Returns True only if the row was in `from_status` and now is in `to_status`.
        Atomic with the enclosing transaction.
        """
        raise NotImplementedError

    @abstractmethod
    def set_status(self, locker_id: str, status: LockerStatus) -> bool:
        """Unconditional status change. Returns False if the locker does not exist."""
        raise NotImplementedError
