from __future__ import annotations

from abc import ABC, abstractmethod

from lockerbay.core.repositories.location_repository import LocationRepository
from lockerbay.core.repositories.locker_repository import LockerRepository
from lockerbay.core.repositories.reservation_history_repository import ReservationHistoryRepository
from lockerbay.core.repositories.reservation_repository import ReservationRepository
from lockerbay.core.repositories.verification_code_repository import VerificationCodeRepository


class UnitOfWork(ABC):
    """
    One store transaction plus the repositories bound to it.

    Usage:
        with uow:
            ...
            uow.commit()

    Leaving the block without commit rolls back. Store failures are re-raised as the
    typed errors from lockerbay.core.errors.
    """

    locations: LocationRepository
    lockers: LockerRepository
    reservations: ReservationRepository
    history: ReservationHistoryRepository
    verification_codes: VerificationCodeRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.rollback()

    @abstractmethod
    def commit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError
