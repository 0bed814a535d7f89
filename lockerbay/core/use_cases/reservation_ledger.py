from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from lockerbay.core.entities.reservation import Reservation, ReservationStatus
from lockerbay.core.entities.reservation_history import ReservationHistoryRecord
from lockerbay.core.errors import ConflictError, ForbiddenError, NotFoundError
from lockerbay.core.repositories.reservation_history_repository import ReservationHistoryRepository
from lockerbay.core.repositories.reservation_repository import ReservationRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReservationView:
    """
    Read model for listing a user's reservations.
    """
    reservation: Reservation
    minutes_left: int
    expiring_soon: bool


class ReservationLedger:
    """
    Reservation records and their transitions.

    Writes are version-checked: a reservation loaded by one transaction and modified by
    another in the meantime cannot be saved, and the caller gets ConflictError.
    """

    def __init__(
            self,
            *,
            reservation_repo: ReservationRepository,
            history_repo: ReservationHistoryRepository,
    ) -> None:
        self._reservation_repo = reservation_repo
        self._history_repo = history_repo

    def open(self, reservation: Reservation) -> None:
        if not reservation.is_active:
            raise ValueError("New reservations must be ACTIVE")
        self._reservation_repo.add(reservation)

    def get(self, reservation_id: str, user_id: str) -> Reservation:
        reservation = self._reservation_repo.get(reservation_id)
        self._check_owner(reservation, user_id)
        return reservation

    def get_for_update(self, reservation_id: str, user_id: str) -> Reservation:
        reservation = self._reservation_repo.get_for_update(reservation_id)
        self._check_owner(reservation, user_id)
        if not reservation.is_active:
            raise ConflictError(
                f"Reservation {reservation_id!r} is already {reservation.status.value}"
            )
        return reservation

    def record_extension(self, reservation: Reservation) -> None:
        self._save(reservation)

    def complete(self, reservation: Reservation, now: datetime) -> ReservationHistoryRecord:
        reservation.complete(now)
        self._save(reservation)
        return self.append_history(reservation)

    def append_history(self, reservation: Reservation) -> ReservationHistoryRecord:
        record = ReservationHistoryRecord.from_completed(str(uuid.uuid4()), reservation)
        self._history_repo.append(record)
        return record

    def cancel(self, reservation: Reservation, now: datetime) -> None:
        reservation.cancel(now)
        self._save(reservation)

    def list_for_user(
            self,
            user_id: str,
            *,
            now: datetime,
            status: ReservationStatus | None = None,
            expiring_window: timedelta = timedelta(minutes=15),
    ) -> list[ReservationView]:
        views: list[ReservationView] = []
        for reservation in self._reservation_repo.list_for_user(user_id, status=status):
            minutes_left = int((reservation.end_time - now).total_seconds() // 60)
            minutes_left = max(0, minutes_left) if reservation.is_active else 0
            views.append(
                ReservationView(
                    reservation=reservation,
                    minutes_left=minutes_left,
                    expiring_soon=reservation.is_active and 0 < minutes_left < expiring_window.total_seconds() / 60,
                )
            )
        return views

    # -----------------------------
    # Internal helpers
    # -----------------------------
    @staticmethod
    def _check_owner(reservation: Reservation | None, user_id: str) -> None:
        if reservation is None:
            raise NotFoundError("Reservation not found")
        if reservation.user_id != user_id:
            raise ForbiddenError("Reservation belongs to another user")

    def _save(self, reservation: Reservation) -> None:
        expected_version = reservation.version
        if not self._reservation_repo.save_if_version(reservation, expected_version=expected_version):
            logger.warning(
                "Lost update race on reservation %s (version %s)", reservation.reservation_id, expected_version
            )
            raise ConflictError(f"Reservation {reservation.reservation_id!r} was modified concurrently")
        reservation.version = expected_version + 1
