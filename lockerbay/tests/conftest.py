from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from lockerbay.core.entities.event import Event
from lockerbay.core.use_cases.reservation_orchestrator import ReservationOrchestrator
from lockerbay.infrastructure.config import Settings
from lockerbay.infrastructure.database import Base, create_session_factory, create_store_engine
from lockerbay.infrastructure.inventory import provision_location, provision_locker, provision_size
from lockerbay.infrastructure.models import models  # noqa: F401
from lockerbay.infrastructure.unit_of_work import SqlAlchemyUnitOfWork

START = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[Event] = []

    def publish(self, event: Event) -> None:
        self.events.append(event)


class RecordingSmsSender:
    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.messages: list[tuple[str, str]] = []

    def send(self, phone: str, message: str) -> bool:
        self.messages.append((phone, message))
        return self.result


def provision_test_inventory(db: Session) -> None:
    """
    central: L1, L2 (SMALL at 10.00), L3 (MEDIUM at 15.00)
    harbour: H1 (SMALL)
    depot (inactive): D1 (SMALL)
    """
    provision_size(db, "SMALL", "10.00")
    provision_size(db, "MEDIUM", "15.00")
    provision_location(db, "central", "Central Station", popularity_score=5)
    provision_location(db, "harbour", "Harbour Front", popularity_score=9)
    provision_location(db, "depot", "Old Depot", popularity_score=20, is_active=False)
    provision_locker(db, locker_id="L1", location_id="central", size="SMALL", locker_code="A01")
    provision_locker(db, locker_id="L2", location_id="central", size="SMALL", locker_code="A02")
    provision_locker(db, locker_id="L3", location_id="central", size="MEDIUM", locker_code="B01")
    provision_locker(db, locker_id="H1", location_id="harbour", size="SMALL", locker_code="H01")
    provision_locker(db, locker_id="D1", location_id="depot", size="SMALL", locker_code="D01")
    db.commit()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    File-backed SQLite so that separate sessions (and threads) see each other's commits.
    """
    return Settings(
        environment="development",
        database_url=f"sqlite+pysqlite:///{tmp_path / 'lockerbay.db'}",
        event_log_path=tmp_path / "events.jsonl",
        lock_timeout_seconds=5.0,
        operator_user_ids=["ops"],
    )


@pytest.fixture()
def engine(settings: Settings) -> Iterator[Engine]:
    engine = create_store_engine(settings)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker]:
    factory = create_session_factory(engine)
    db = factory()
    try:
        provision_test_inventory(db)
    finally:
        db.close()
    yield factory


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture()
def sms_sender() -> RecordingSmsSender:
    return RecordingSmsSender()


@pytest.fixture()
def new_session(session_factory: sessionmaker) -> Iterator[Callable[[], Session]]:
    """Open sessions on demand; all of them are closed at teardown."""
    sessions: list[Session] = []

    def _open() -> Session:
        db = session_factory()
        sessions.append(db)
        return db

    yield _open
    for db in sessions:
        db.close()


@pytest.fixture()
def make_orchestrator(
        new_session: Callable[[], Session],
        publisher: RecordingPublisher,
        clock: FakeClock,
) -> Callable[[], ReservationOrchestrator]:
    def _make(**kwargs) -> ReservationOrchestrator:
        return ReservationOrchestrator(
            uow=SqlAlchemyUnitOfWork(new_session()),
            publisher=publisher,
            clock=clock,
            **kwargs,
        )

    return _make


@pytest.fixture()
def orchestrator(make_orchestrator: Callable[[], ReservationOrchestrator]) -> ReservationOrchestrator:
    return make_orchestrator()


@pytest.fixture()
def provision_inventory() -> Callable[[Session], None]:
    return provision_test_inventory
