from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from lockerbay.core.clock import utcnow
from lockerbay.core.entities.locker import LockerSize
from lockerbay.core.entities.reservation import Reservation as CoreReservation
from lockerbay.core.entities.reservation import ReservationStatus as CoreReservationStatus
from lockerbay.core.repositories.event_publisher import EventPublisher
from lockerbay.core.use_cases.reservation_ledger import ReservationView
from lockerbay.core.use_cases.reservation_orchestrator import ReservationOrchestrator
from lockerbay.core.use_cases.verification_service import SmsSender, VerificationService
from lockerbay.infrastructure.config import Settings
from lockerbay.infrastructure.unit_of_work import SqlAlchemyUnitOfWork
from lockerbay.schemas.models import (
    AvailableLocker,
    AvailableLockers,
    ExtendRequest,
    ExtendResponse,
    LocationDetail,
    LocationSummary,
    Locker,
    MaintenanceRequest,
    ReleaseResponse,
    ReserveRequest,
    ReserveResponse,
    Reservation,
    Size,
    SizeAvailability,
    Status,
    VerificationCodeIssued,
    VerificationCodeRequest,
    VerifyCodeRequest,
    VerifyCodeResult,
)


@dataclass
class ServiceContext:
    """
    Process-scoped collaborators, created at app startup and handed to every request.
    """
    settings: Settings
    publisher: EventPublisher
    sms_sender: SmsSender
    clock: Callable[[], datetime] = field(default=utcnow)


def _orchestrator(db: Session, ctx: ServiceContext) -> ReservationOrchestrator:
    return ReservationOrchestrator(
        uow=SqlAlchemyUnitOfWork(db),
        publisher=ctx.publisher,
        clock=ctx.clock,
        retries=ctx.settings.transaction_retries,
        max_duration_hours=ctx.settings.max_reservation_hours,
        max_extension_hours=ctx.settings.max_extension_hours,
        max_total_hours=ctx.settings.max_total_reservation_hours,
    )


def _verification(db: Session, ctx: ServiceContext) -> VerificationService:
    return VerificationService(
        uow=SqlAlchemyUnitOfWork(db),
        sms_sender=ctx.sms_sender,
        ttl=timedelta(minutes=ctx.settings.otp_ttl_minutes),
        clock=ctx.clock,
        retries=ctx.settings.transaction_retries,
    )


def _to_schema(reservation: CoreReservation, view: ReservationView | None = None) -> Reservation:
    return Reservation(
        reservation_id=reservation.reservation_id,
        locker_id=reservation.locker_id,
        status=Status(reservation.status.value),
        start_time=reservation.start_time,
        expected_end_time=reservation.expected_end_time,
        extended_end_time=reservation.extended_end_time,
        actual_end_time=reservation.actual_end_time,
        total_cost=reservation.total_cost,
        extension_count=reservation.extension_count,
        access_code=reservation.access_code if reservation.is_active else None,
        minutes_left=view.minutes_left if view is not None else None,
        expiring_soon=view.expiring_soon if view is not None else None,
    )


def reserve_locker_service(body: ReserveRequest, user_id: str, db: Session, ctx: ServiceContext) -> ReserveResponse:
    result = _orchestrator(db, ctx).reserve(
        user_id=user_id,
        locker_id=body.locker_id,
        duration_hours=body.duration_hours,
    )
    return ReserveResponse(
        reservation_id=result.reservation_id,
        locker_id=result.locker_id,
        access_code=result.access_code,
        expires_at=result.expires_at,
        total_cost=result.total_cost,
        status=Status(result.status.value),
    )


def extend_reservation_service(
        reservation_id: str, body: ExtendRequest, user_id: str, db: Session, ctx: ServiceContext
) -> ExtendResponse:
    result = _orchestrator(db, ctx).extend(
        reservation_id=reservation_id,
        user_id=user_id,
        additional_hours=body.additional_hours,
    )
    return ExtendResponse(
        reservation_id=result.reservation_id,
        new_end_time=result.new_end_time,
        additional_cost=result.additional_cost,
        total_cost=result.total_cost,
        extension_count=result.extension_count,
    )


def release_reservation_service(reservation_id: str, user_id: str, db: Session, ctx: ServiceContext) -> ReleaseResponse:
    result = _orchestrator(db, ctx).release(reservation_id=reservation_id, user_id=user_id)
    return ReleaseResponse(
        reservation_id=result.reservation_id,
        total_hours=result.total_hours,
        total_cost=result.total_cost,
    )


def cancel_reservation_service(reservation_id: str, user_id: str, db: Session, ctx: ServiceContext) -> Reservation:
    reservation = _orchestrator(db, ctx).cancel(reservation_id=reservation_id, user_id=user_id)
    return _to_schema(reservation)


def get_reservation_service(reservation_id: str, user_id: str, db: Session, ctx: ServiceContext) -> Reservation:
    reservation = _orchestrator(db, ctx).get_reservation(reservation_id=reservation_id, user_id=user_id)
    return _to_schema(reservation)


def list_reservations_service(
        user_id: str, status: Status | None, db: Session, ctx: ServiceContext
) -> list[Reservation]:
    views = _orchestrator(db, ctx).list_reservations(
        user_id=user_id,
        status=CoreReservationStatus(status.value) if status is not None else None,
        expiring_window=timedelta(minutes=ctx.settings.expiring_soon_minutes),
    )
    return [_to_schema(view.reservation, view) for view in views]


def find_available_lockers_service(
        location_id: str | None, size: Size | None, db: Session, ctx: ServiceContext
) -> AvailableLockers:
    locker_ids = _orchestrator(db, ctx).find_available(
        location_id=location_id,
        size=LockerSize(size.value) if size is not None else None,
    )
    return AvailableLockers(locker_ids=locker_ids)


def list_locations_service(db: Session, ctx: ServiceContext) -> list[LocationSummary]:
    return [
        LocationSummary(
            location_id=item.location.location_id,
            name=item.location.name,
            address=item.location.address,
            latitude=item.location.latitude,
            longitude=item.location.longitude,
            popularity_score=item.location.popularity_score,
            available_count=item.available_count,
            available_by_size={Size(size.value): count for size, count in item.available_by_size.items()},
        )
        for item in _orchestrator(db, ctx).list_locations()
    ]


def get_location_service(location_id: str, db: Session, ctx: ServiceContext) -> LocationDetail:
    details = _orchestrator(db, ctx).location_details(location_id=location_id)
    return LocationDetail(
        location_id=details.location.location_id,
        name=details.location.name,
        address=details.location.address,
        latitude=details.location.latitude,
        longitude=details.location.longitude,
        sizes=[
            SizeAvailability(
                size=Size(item.size.value),
                base_price=item.base_price,
                description=item.description,
                available_count=item.available_count,
                lockers=[
                    AvailableLocker(locker_id=locker.locker_id, locker_code=locker.locker_code)
                    for locker in item.lockers
                ],
            )
            for item in details.sizes
        ],
    )


def set_locker_maintenance_service(
        locker_id: str, body: MaintenanceRequest, db: Session, ctx: ServiceContext
) -> Locker:
    locker = _orchestrator(db, ctx).set_locker_maintenance(locker_id=locker_id, enabled=body.enabled)
    return Locker(locker_id=locker.locker_id, status=locker.status.value)


def request_verification_code_service(
        body: VerificationCodeRequest, db: Session, ctx: ServiceContext
) -> VerificationCodeIssued:
    issued = _verification(db, ctx).request_code(body.phone, body.purpose.value)
    return VerificationCodeIssued(
        sent=issued.sent,
        expires_at=issued.expires_at,
        # Development only: lets the code be used without an SMS gateway.
        otp=issued.code if ctx.settings.is_development else None,
    )


def verify_code_service(body: VerifyCodeRequest, db: Session, ctx: ServiceContext) -> VerifyCodeResult:
    valid = _verification(db, ctx).verify(body.phone, body.code, body.purpose.value)
    return VerifyCodeResult(valid=valid)


def purge_expired_codes_service(db: Session, ctx: ServiceContext) -> int:
    return _verification(db, ctx).purge_expired()
