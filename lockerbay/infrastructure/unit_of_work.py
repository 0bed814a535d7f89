from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from lockerbay.core.errors import ConflictError, InternalError, TransientError
from lockerbay.core.repositories.unit_of_work import UnitOfWork
from lockerbay.infrastructure.repositories.location_repository_impl import LocationRepositoryImpl
from lockerbay.infrastructure.repositories.locker_repository_impl import LockerRepositoryImpl
from lockerbay.infrastructure.repositories.reservation_history_repository_impl import (
    ReservationHistoryRepositoryImpl,
)
from lockerbay.infrastructure.repositories.reservation_repository_impl import ReservationRepositoryImpl
from lockerbay.infrastructure.repositories.verification_code_repository_impl import (
    VerificationCodeRepositoryImpl,
)

logger = logging.getLogger(__name__)


class SqlAlchemyUnitOfWork(UnitOfWork):
    """
    Unit of work over one SQLAlchemy Session.

    The session begins its transaction on first use; leaving the `with` block always rolls
    back whatever was not committed. SQLAlchemy failures leave the block as typed errors.
    """

    def __init__(self, db: Session) -> None:
        self._db = db
        self.locations = LocationRepositoryImpl(db)
        self.lockers = LockerRepositoryImpl(db)
        self.reservations = ReservationRepositoryImpl(db)
        self.history = ReservationHistoryRepositoryImpl(db)
        self.verification_codes = VerificationCodeRepositoryImpl(db)

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.rollback()
        except SQLAlchemyError:
            logger.warning("Rollback failed", exc_info=True)

        if exc is None or not isinstance(exc, SQLAlchemyError):
            return

        if isinstance(exc, IntegrityError):
            logger.warning("Integrity violation, transaction rolled back: %s", exc.orig)
            raise ConflictError("The change conflicts with the current state of the store") from exc
        if isinstance(exc, (OperationalError, PoolTimeoutError)):
            logger.warning("Store unavailable or lock timeout, transaction rolled back: %s", exc)
            raise TransientError("The store is busy or unreachable; retry the request") from exc

        logger.error("Unexpected store error, transaction rolled back", exc_info=exc)
        raise InternalError("Unexpected store error") from exc

    def commit(self) -> None:
        self._db.commit()

    def rollback(self) -> None:
        self._db.rollback()
