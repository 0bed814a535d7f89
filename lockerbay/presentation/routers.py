from __future__ import annotations

from typing import Iterator, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from lockerbay.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    LockerBayError,
    NotFoundError,
    TransientError,
)
from lockerbay.presentation.auth import get_current_user_id, get_operator_id
from lockerbay.schemas.models import (
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
    Status,
    VerificationCodeIssued,
    VerificationCodeRequest,
    VerifyCodeRequest,
    VerifyCodeResult,
)
from lockerbay.services.lockerbay_service import (
    ServiceContext,
    cancel_reservation_service,
    extend_reservation_service,
    find_available_lockers_service,
    get_location_service,
    get_reservation_service,
    list_locations_service,
    list_reservations_service,
    release_reservation_service,
    request_verification_code_service,
    reserve_locker_service,
    set_locker_maintenance_service,
    verify_code_service,
)

router = APIRouter()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_context(request: Request) -> ServiceContext:
    return request.app.state.service_context


def _http_error(e: LockerBayError) -> HTTPException:
    if isinstance(e, InvalidInputError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ForbiddenError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, TransientError):
        return HTTPException(status_code=503, detail=str(e), headers={"Retry-After": "1"})
    return HTTPException(status_code=500, detail="Internal error")


@router.get("/lockers/available", response_model=AvailableLockers)
def get_lockers_available(
    location_id: Optional[str] = None,
    size: Optional[Size] = None,
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
) -> AvailableLockers:
    """
    List AVAILABLE lockers, optionally filtered by location and size
    """
    try:
        return find_available_lockers_service(location_id, size, db, ctx)
    except LockerBayError as e:
        raise _http_error(e)


@router.get("/locations", response_model=List[LocationSummary])
def get_locations(
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
) -> List[LocationSummary]:
    """
    Active locations with their available locker counts, most popular first
    """
    try:
        return list_locations_service(db, ctx)
    except LockerBayError as e:
        raise _http_error(e)


@router.get("/locations/{location_id}", response_model=LocationDetail)
def get_locations_location_id(
    location_id: str,
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
) -> LocationDetail:
    """
    Base price and available lockers per size at one location

    Returns:
      - 200 with one entry per locker size
      - 404 if the location does not exist or is inactive
    """
    try:
        return get_location_service(location_id, db, ctx)
    except LockerBayError as e:
        raise _http_error(e)


@router.put("/lockers/{locker_id}/maintenance", response_model=Locker)
def put_lockers_locker_id_maintenance(
    locker_id: str,
    body: MaintenanceRequest,
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
    _operator_id: str = Depends(get_operator_id),
) -> Locker:
    """
    Take a locker out of service or put it back (operators only)

    Returns:
      - 200 with the new locker status
      - 403 if the caller is not an operator
      - 404 if the locker does not exist
      - 409 if the locker is occupied or already in the requested state
    """
    try:
        return set_locker_maintenance_service(locker_id, body, db, ctx)
    except LockerBayError as e:
        raise _http_error(e)


@router.post("/reservations", response_model=ReserveResponse, status_code=201)
def post_reservations(
    body: ReserveRequest,
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
    user_id: str = Depends(get_current_user_id),
) -> ReserveResponse:
    """
    Reserve a locker

    Returns:
      - 201 with the reservation id, access code and expiry
      - 404 if the locker does not exist
      - 409 if the locker is not available
      - 422 on invalid input
      - 503 if the store is busy (safe to retry)
    """
    try:
        return reserve_locker_service(body, user_id, db, ctx)
    except LockerBayError as e:
        raise _http_error(e)


@router.get("/reservations", response_model=List[Reservation])
def get_reservations(
    status: Optional[Status] = None,
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
    user_id: str = Depends(get_current_user_id),
) -> List[Reservation]:
    """
    List the caller's reservations, newest first
    """
    try:
        return list_reservations_service(user_id, status, db, ctx)
    except LockerBayError as e:
        raise _http_error(e)


@router.get("/reservations/{reservation_id}", response_model=Reservation)
def get_reservations_reservation_id(
    reservation_id: str,
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
    user_id: str = Depends(get_current_user_id),
) -> Reservation:
    try:
        return get_reservation_service(reservation_id, user_id, db, ctx)
    except LockerBayError as e:
        raise _http_error(e)


@router.post("/reservations/{reservation_id}/extend", response_model=ExtendResponse)
def post_reservations_reservation_id_extend(
    reservation_id: str,
    body: ExtendRequest,
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
    user_id: str = Depends(get_current_user_id),
) -> ExtendResponse:
    """
    Extend an active reservation

    Returns:
      - 200 with the new end time and the additional cost
      - 403 if the reservation belongs to another user
      - 404 if the reservation does not exist
      - 409 if the reservation is no longer active
    """
    try:
        return extend_reservation_service(reservation_id, body, user_id, db, ctx)
    except LockerBayError as e:
        raise _http_error(e)


@router.post("/reservations/{reservation_id}/release", response_model=ReleaseResponse)
def post_reservations_reservation_id_release(
    reservation_id: str,
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
    user_id: str = Depends(get_current_user_id),
) -> ReleaseResponse:
    """
    Complete a reservation and free its locker
    """
    try:
        return release_reservation_service(reservation_id, user_id, db, ctx)
    except LockerBayError as e:
        raise _http_error(e)


@router.post("/reservations/{reservation_id}/cancel", response_model=Reservation)
def post_reservations_reservation_id_cancel(
    reservation_id: str,
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
    user_id: str = Depends(get_current_user_id),
) -> Reservation:
    try:
        return cancel_reservation_service(reservation_id, user_id, db, ctx)
    except LockerBayError as e:
        raise _http_error(e)


@router.post("/verification-codes", response_model=VerificationCodeIssued)
def post_verification_codes(
    body: VerificationCodeRequest,
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
) -> VerificationCodeIssued:
    """
    Issue a phone verification code (valid for 10 minutes by default)
    """
    try:
        return request_verification_code_service(body, db, ctx)
    except LockerBayError as e:
        raise _http_error(e)


@router.post("/verification-codes/verify", response_model=VerifyCodeResult)
def post_verification_codes_verify(
    body: VerifyCodeRequest,
    db: Session = Depends(get_db),
    ctx: ServiceContext = Depends(get_context),
) -> VerifyCodeResult:
    """
    Check a verification code. Wrong, expired and already-used codes all return valid=false.
    """
    try:
        return verify_code_service(body, db, ctx)
    except LockerBayError as e:
        raise _http_error(e)
