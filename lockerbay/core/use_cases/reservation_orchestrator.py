from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, TypeVar

from lockerbay.core.clock import utcnow
from lockerbay.core.entities.event import Event, EventType
from lockerbay.core.entities.locker import Locker, LockerSize
from lockerbay.core.entities.reservation import Reservation, ReservationStatus
from lockerbay.core.errors import InvalidInputError, TransientError
from lockerbay.core.repositories.event_publisher import EventPublisher
from lockerbay.core.repositories.unit_of_work import UnitOfWork
from lockerbay.core.use_cases import pricing_engine
from lockerbay.core.use_cases.access_code_issuer import AccessCodeIssuer
from lockerbay.core.use_cases.reservation_ledger import ReservationLedger, ReservationView
from lockerbay.core.use_cases.resource_registry import LocationAvailability, LocationDetails, ResourceRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ReserveResult:
    reservation_id: str
    locker_id: str
    access_code: str
    expires_at: datetime
    total_cost: Decimal
    status: ReservationStatus


@dataclass(frozen=True, slots=True)
class ExtendResult:
    reservation_id: str
    new_end_time: datetime
    additional_cost: Decimal
    total_cost: Decimal
    extension_count: int


@dataclass(frozen=True, slots=True)
class ReleaseResult:
    reservation_id: str
    total_hours: int
    total_cost: Decimal


class ReservationOrchestrator:
    """
    Composition root for reserve / extend / release / cancel.

    Each operation is one unit of work: the locker row, the reservation row and the history
    row change together or not at all. Store-level lock timeouts are retried a bounded
    number of times, everything else propagates as a typed error. Status events are
    published only after commit.
    """

    def __init__(
            self,
            *,
            uow: UnitOfWork,
            publisher: EventPublisher,
            clock: Callable[[], datetime] = utcnow,
            retries: int = 1,
            max_duration_hours: float = 168,
            max_extension_hours: float = 168,
            max_total_hours: float = 720,
    ) -> None:
        self._uow = uow
        self._publisher = publisher
        self._clock = clock
        self._retries = retries
        self._max_duration_hours = max_duration_hours
        self._max_extension_hours = max_extension_hours
        self._max_total_hours = max_total_hours

        self._registry = ResourceRegistry(locker_repo=uow.lockers, location_repo=uow.locations)
        self._ledger = ReservationLedger(reservation_repo=uow.reservations, history_repo=uow.history)
        self._access_codes = AccessCodeIssuer(reservation_repo=uow.reservations)

    # -----------------------------
    # Commands
    # -----------------------------
    def reserve(self, *, user_id: str, locker_id: str, duration_hours: float) -> ReserveResult:
        self._require_id(user_id, "user_id")
        self._require_id(locker_id, "locker_id")
        pricing_engine.billable_hours(duration_hours, max_hours=self._max_duration_hours)

        def _reserve() -> ReserveResult:
            locker = self._registry.try_mark_occupied(locker_id)
            total_cost = pricing_engine.initial_cost(locker.base_price, duration_hours)
            access_code = self._access_codes.generate()

            now = self._clock()
            reservation = Reservation(
                reservation_id=str(uuid.uuid4()),
                user_id=user_id,
                locker_id=locker_id,
                start_time=now,
                expected_end_time=now + timedelta(hours=duration_hours),
                total_cost=total_cost,
                access_code=access_code,
            )
            self._ledger.open(reservation)
            self._uow.commit()

            return ReserveResult(
                reservation_id=reservation.reservation_id,
                locker_id=locker_id,
                access_code=access_code,
                expires_at=reservation.expected_end_time,
                total_cost=reservation.total_cost,
                status=reservation.status,
            )

        result = self._run(_reserve, "reserve")
        logger.info("Reservation %s opened on locker %s for user %s", result.reservation_id, locker_id, user_id)
        self._publish(
            locker_id,
            EventType.LockerReserved,
            {"reservation_id": result.reservation_id, "expires_at": result.expires_at.isoformat()},
        )
        return result

    def extend(self, *, reservation_id: str, user_id: str, additional_hours: float) -> ExtendResult:
        self._require_id(reservation_id, "reservation_id")
        self._require_id(user_id, "user_id")
        pricing_engine.billable_hours(additional_hours, max_hours=self._max_extension_hours)

        def _extend() -> tuple[Reservation, ExtendResult]:
            reservation = self._ledger.get_for_update(reservation_id, user_id)
            locker = self._registry.get(reservation.locker_id)
            self._check_total_span(reservation, additional_hours)

            additional_cost = pricing_engine.extension_cost(locker.base_price, additional_hours)
            new_end_time = reservation.extend(additional_hours=additional_hours, additional_cost=additional_cost)
            self._ledger.record_extension(reservation)
            self._uow.commit()

            return reservation, ExtendResult(
                reservation_id=reservation_id,
                new_end_time=new_end_time,
                additional_cost=additional_cost,
                total_cost=reservation.total_cost,
                extension_count=reservation.extension_count,
            )

        reservation, result = self._run(_extend, "extend")
        logger.info(
            "Reservation %s extended to %s (extension #%s)",
            reservation_id, result.new_end_time.isoformat(), result.extension_count,
        )
        self._publish(
            reservation.locker_id,
            EventType.ReservationExtended,
            {"reservation_id": reservation_id, "new_end_time": result.new_end_time.isoformat()},
        )
        return result

    def release(self, *, reservation_id: str, user_id: str) -> ReleaseResult:
        self._require_id(reservation_id, "reservation_id")
        self._require_id(user_id, "user_id")

        def _release() -> tuple[Reservation, ReleaseResult]:
            reservation = self._ledger.get_for_update(reservation_id, user_id)
            record = self._ledger.complete(reservation, self._clock())
            self._registry.mark_available(reservation.locker_id)
            self._uow.commit()

            return reservation, ReleaseResult(
                reservation_id=reservation_id,
                total_hours=record.total_hours,
                total_cost=record.total_cost,
            )

        reservation, result = self._run(_release, "release")
        logger.info("Reservation %s completed, locker %s released", reservation_id, reservation.locker_id)
        self._publish(reservation.locker_id, EventType.LockerReleased, {"reservation_id": reservation_id})
        return result

    def cancel(self, *, reservation_id: str, user_id: str) -> Reservation:
        self._require_id(reservation_id, "reservation_id")
        self._require_id(user_id, "user_id")

        def _cancel() -> Reservation:
            reservation = self._ledger.get_for_update(reservation_id, user_id)
            self._ledger.cancel(reservation, self._clock())
            self._registry.mark_available(reservation.locker_id)
            self._uow.commit()
            return reservation

        reservation = self._run(_cancel, "cancel")
        logger.info("Reservation %s cancelled, locker %s released", reservation_id, reservation.locker_id)
        self._publish(reservation.locker_id, EventType.ReservationCancelled, {"reservation_id": reservation_id})
        return reservation

    def set_locker_maintenance(self, *, locker_id: str, enabled: bool) -> Locker:
        self._require_id(locker_id, "locker_id")

        def _set() -> Locker:
            locker = self._registry.set_maintenance(locker_id, enabled=enabled)
            self._uow.commit()
            return locker

        locker = self._run(_set, "set_locker_maintenance")
        self._publish(locker_id, EventType.LockerMaintenanceChanged, {"status": locker.status.value})
        return locker

    # -----------------------------
    # Queries
    # -----------------------------
    def find_available(self, *, location_id: str | None = None, size: LockerSize | None = None) -> list[str]:
        return self._run(lambda: self._registry.find_available(location_id=location_id, size=size), "find_available")

    def list_locations(self) -> list[LocationAvailability]:
        return self._run(self._registry.list_locations, "list_locations")

    def location_details(self, *, location_id: str) -> LocationDetails:
        self._require_id(location_id, "location_id")
        return self._run(lambda: self._registry.location_details(location_id), "location_details")

    def get_reservation(self, *, reservation_id: str, user_id: str) -> Reservation:
        return self._run(lambda: self._ledger.get(reservation_id, user_id), "get_reservation")

    def list_reservations(
            self,
            *,
            user_id: str,
            status: ReservationStatus | None = None,
            expiring_window: timedelta = timedelta(minutes=15),
    ) -> list[ReservationView]:
        self._require_id(user_id, "user_id")
        return self._run(
            lambda: self._ledger.list_for_user(
                user_id, now=self._clock(), status=status, expiring_window=expiring_window
            ),
            "list_reservations",
        )

    # -----------------------------
    # Internal helpers
    # -----------------------------
    def _run(self, operation: Callable[[], T], name: str) -> T:
        attempt = 0
        while True:
            try:
                with self._uow:
                    return operation()
            except TransientError:
                if attempt >= self._retries:
                    logger.error("%s failed after %s attempt(s) on a transient store error", name, attempt + 1)
                    raise
                attempt += 1
                logger.warning("%s hit a transient store error, retrying (%s/%s)", name, attempt, self._retries)

    def _publish(self, locker_id: str, event_type: EventType, payload: dict[str, Any]) -> None:
        event = Event(
            event_id=str(uuid.uuid4()),
            occurred_at=self._clock(),
            locker_id=locker_id,
            type=event_type,
            payload=payload,
        )
        try:
            self._publisher.publish(event)
        except Exception:
            # The transaction is already committed; delivery is best effort.
            logger.exception("Failed to publish %s for locker %s", event_type.value, locker_id)

    def _check_total_span(self, reservation: Reservation, additional_hours: float) -> None:
        span = reservation.end_time + timedelta(hours=additional_hours) - reservation.start_time
        if span > timedelta(hours=self._max_total_hours):
            raise InvalidInputError(
                f"A reservation cannot run longer than {self._max_total_hours:g} hours in total"
            )

    @staticmethod
    def _require_id(value: str, name: str) -> None:
        if not isinstance(value, str) or not value.strip():
            raise InvalidInputError(f"{name} must be a non-empty string")
