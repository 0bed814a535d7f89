from __future__ import annotations

from abc import ABC, abstractmethod

from lockerbay.core.entities.reservation import Reservation, ReservationStatus


class ReservationRepository(ABC):
    @abstractmethod
    def get(self, reservation_id: str) -> Reservation | None:
        raise NotImplementedError

    @abstractmethod
    def get_for_update(self, reservation_id: str) -> Reservation | None:
        """Same as get, holding a row lock until the transaction ends where the store supports it."""
        raise NotImplementedError

    @abstractmethod
    def add(self, reservation: Reservation) -> None:
        raise NotImplementedError

    @abstractmethod
    def save_if_version(self, reservation: Reservation, *, expected_version: int) -> bool:
        """
        Write the mutable fields only if the stored version still equals `expected_version`.
        Bumps the version on success; returns False when another transaction got there first.
        """
        raise NotImplementedError

    @abstractmethod
    def access_code_in_use(self, access_code: str) -> bool:
        """True if an ACTIVE reservation currently holds this access code."""
        raise NotImplementedError

    @abstractmethod
    def list_for_user(self, user_id: str, *, status: ReservationStatus | None = None) -> list[Reservation]:
        """Newest first."""
        raise NotImplementedError
