from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

import lockerbay.presentation.routers as routers
from lockerbay.core.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    ResourceUnavailableError,
    TransientError,
)
from lockerbay.presentation.auth import PassthroughIdentityVerifier, UnauthenticatedError
from lockerbay.schemas.models import (
    AvailableLockers,
    ExtendResponse,
    LocationDetail,
    Locker,
    LockerStatus,
    ReleaseResponse,
    ReserveResponse,
    Status,
    VerificationCodeIssued,
    VerifyCodeResult,
)

AUTH = {"Authorization": "Bearer user-1"}
EXPIRES = datetime(2026, 1, 5, 13, 0, tzinfo=timezone.utc)


class _DummyDB:
    """A minimal stand-in for a SQLAlchemy Session (never used by the faked services)."""


@pytest.fixture()
def app() -> FastAPI:
    """
    Build a tiny FastAPI app with ONLY the router under test.

    The DB and context dependencies are overridden so nothing touches a real store.
    """
    test_app = FastAPI()
    test_app.include_router(routers.router)
    test_app.state.identity_verifier = PassthroughIdentityVerifier()
    test_app.state.operator_ids = frozenset({"ops"})

    def _override_get_db():
        yield _DummyDB()

    test_app.dependency_overrides[routers.get_db] = _override_get_db
    test_app.dependency_overrides[routers.get_context] = lambda: None
    return test_app


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def _reserve_response() -> ReserveResponse:
    return ReserveResponse(
        reservation_id="r-1",
        locker_id="L1",
        access_code="123456",
        expires_at=EXPIRES,
        total_cost=Decimal("30.00"),
        status=Status.ACTIVE,
    )


def test_reserve_returns_201_and_passes_the_caller_id(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def _fake_reserve_locker_service(body, user_id, db, ctx):
        seen.update(locker_id=body.locker_id, hours=body.duration_hours, user_id=user_id)
        return _reserve_response()

    monkeypatch.setattr(routers, "reserve_locker_service", _fake_reserve_locker_service)

    r = client.post("/reservations", json={"locker_id": "L1", "duration_hours": 3}, headers=AUTH)

    assert r.status_code == 201
    body = r.json()
    assert body["reservation_id"] == "r-1"
    assert body["access_code"] == "123456"
    assert Decimal(str(body["total_cost"])) == Decimal("30.00")
    assert seen == {"locker_id": "L1", "hours": 3.0, "user_id": "user-1"}


@pytest.mark.parametrize("headers", [{}, {"Authorization": "user-1"}, {"Authorization": "Basic dXNlcg=="}])
def test_reserve_without_bearer_token_returns_401(client: TestClient, headers) -> None:
    r = client.post("/reservations", json={"locker_id": "L1", "duration_hours": 3}, headers=headers)
    assert r.status_code == 401


def test_rejected_token_returns_401(app: FastAPI, client: TestClient) -> None:
    class _Rejecting:
        def verify_identity(self, token: str) -> str:
            raise UnauthenticatedError("token expired")

    app.state.identity_verifier = _Rejecting()

    r = client.get("/reservations", headers=AUTH)
    assert r.status_code == 401
    assert r.json()["detail"] == "token expired"


@pytest.mark.parametrize(
    "error, status",
    [
        (InvalidInputError("duration_hours must be positive"), 422),
        (NotFoundError("Locker not found"), 404),
        (ForbiddenError("not yours"), 403),
        (ResourceUnavailableError("Locker 'L1' is OCCUPIED"), 409),
        (ConflictError("modified concurrently"), 409),
        (TransientError("busy"), 503),
        (InternalError("boom"), 500),
    ],
)
def test_reserve_error_mapping(client: TestClient, monkeypatch: pytest.MonkeyPatch, error, status) -> None:
    def _fake_reserve_locker_service(body, user_id, db, ctx):
        raise error

    monkeypatch.setattr(routers, "reserve_locker_service", _fake_reserve_locker_service)

    r = client.post("/reservations", json={"locker_id": "L1", "duration_hours": 3}, headers=AUTH)
    assert r.status_code == status
    assert "detail" in r.json()


def test_transient_error_asks_client_to_retry(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_reserve_locker_service(body, user_id, db, ctx):
        raise TransientError("busy")

    monkeypatch.setattr(routers, "reserve_locker_service", _fake_reserve_locker_service)

    r = client.post("/reservations", json={"locker_id": "L1", "duration_hours": 3}, headers=AUTH)
    assert r.status_code == 503
    assert r.headers["Retry-After"] == "1"


def test_reserve_body_validation_returns_422(client: TestClient) -> None:
    r = client.post("/reservations", json={"locker_id": "L1"}, headers=AUTH)
    assert r.status_code == 422


def test_extend_returns_200(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_extend_reservation_service(reservation_id, body, user_id, db, ctx):
        assert reservation_id == "r-1"
        return ExtendResponse(
            reservation_id=reservation_id,
            new_end_time=EXPIRES,
            additional_cost=Decimal("20.00"),
            total_cost=Decimal("50.00"),
            extension_count=1,
        )

    monkeypatch.setattr(routers, "extend_reservation_service", _fake_extend_reservation_service)

    r = client.post("/reservations/r-1/extend", json={"additional_hours": 2}, headers=AUTH)
    assert r.status_code == 200
    assert r.json()["extension_count"] == 1


def test_release_of_someone_elses_reservation_returns_403(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_release_reservation_service(reservation_id, user_id, db, ctx):
        raise ForbiddenError("Reservation belongs to another user")

    monkeypatch.setattr(routers, "release_reservation_service", _fake_release_reservation_service)

    r = client.post("/reservations/r-1/release", headers=AUTH)
    assert r.status_code == 403


def test_release_returns_200(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_release_reservation_service(reservation_id, user_id, db, ctx):
        return ReleaseResponse(reservation_id=reservation_id, total_hours=3, total_cost=Decimal("30.00"))

    monkeypatch.setattr(routers, "release_reservation_service", _fake_release_reservation_service)

    r = client.post("/reservations/r-1/release", headers=AUTH)
    assert r.status_code == 200
    assert r.json()["total_hours"] == 3


def test_available_lockers_is_public_and_validates_size(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_find_available_lockers_service(location_id, size, db, ctx):
        return AvailableLockers(locker_ids=["L1", "L2"] if size is None else ["L1"])

    monkeypatch.setattr(routers, "find_available_lockers_service", _fake_find_available_lockers_service)

    assert client.get("/lockers/available").json() == {"locker_ids": ["L1", "L2"]}
    assert client.get("/lockers/available?size=SMALL&location_id=central").json() == {"locker_ids": ["L1"]}
    assert client.get("/lockers/available?size=HUGE").status_code == 422


def test_list_reservations_rejects_unknown_status(client: TestClient) -> None:
    r = client.get("/reservations?status=EXPIRED", headers=AUTH)
    assert r.status_code == 422


def test_verification_endpoints(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_request_verification_code_service(body, db, ctx):
        if body.phone == "bad":
            raise InvalidInputError("phone must contain 7 to 15 digits")
        return VerificationCodeIssued(sent=False, expires_at=EXPIRES)

    def _fake_verify_code_service(body, db, ctx):
        return VerifyCodeResult(valid=body.code == "123456")

    monkeypatch.setattr(routers, "request_verification_code_service", _fake_request_verification_code_service)
    monkeypatch.setattr(routers, "verify_code_service", _fake_verify_code_service)

    issued = client.post("/verification-codes", json={"phone": "+15551234567"})
    assert issued.status_code == 200
    assert issued.json()["otp"] is None

    assert client.post("/verification-codes", json={"phone": "bad"}).status_code == 422
    assert client.post("/verification-codes", json={"phone": "+15551234567", "purpose": "NOPE"}).status_code == 422

    ok = client.post("/verification-codes/verify", json={"phone": "+15551234567", "code": "123456"})
    assert ok.json() == {"valid": True}
    wrong = client.post("/verification-codes/verify", json={"phone": "+15551234567", "code": "654321"})
    assert wrong.status_code == 200
    assert wrong.json() == {"valid": False}


def test_maintenance_is_limited_to_operators(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def _fake_set_locker_maintenance_service(locker_id, body, db, ctx):
        calls.append(locker_id)
        return Locker(locker_id=locker_id, status=LockerStatus.MAINTENANCE)

    monkeypatch.setattr(routers, "set_locker_maintenance_service", _fake_set_locker_maintenance_service)

    denied = client.put("/lockers/L1/maintenance", json={"enabled": True}, headers=AUTH)
    assert denied.status_code == 403
    assert calls == []

    allowed = client.put("/lockers/L1/maintenance", json={"enabled": True}, headers={"Authorization": "Bearer ops"})
    assert allowed.status_code == 200
    assert allowed.json() == {"locker_id": "L1", "status": "MAINTENANCE"}
    assert calls == ["L1"]


def test_location_routes_are_public(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def _fake_get_location_service(location_id, db, ctx):
        if location_id == "closed":
            raise NotFoundError("Location not found")
        return LocationDetail(location_id=location_id, name="Central Station", sizes=[])

    monkeypatch.setattr(routers, "list_locations_service", lambda db, ctx: [])
    monkeypatch.setattr(routers, "get_location_service", _fake_get_location_service)

    assert client.get("/locations").json() == []
    assert client.get("/locations/central").json()["name"] == "Central Station"
    assert client.get("/locations/closed").status_code == 404
