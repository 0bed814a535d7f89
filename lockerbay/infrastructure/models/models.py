from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from lockerbay.core.entities.locker import LockerSize, LockerStatus
from lockerbay.core.entities.reservation import ReservationStatus
from lockerbay.core.entities.verification_code import VerificationPurpose
from lockerbay.infrastructure.database import Base

_ACTIVE_ONLY = text("status = 'ACTIVE'")


class UTCDateTime(TypeDecorator):
    """
    Stores naive UTC, returns aware UTC. Naive input is rejected.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Naive datetimes cannot be stored; pass an aware UTC datetime")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


Money = Numeric(10, 2, asdecimal=True)


class LocationModel(Base):
    __tablename__ = "locations"

    location_id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    popularity_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    lockers = relationship("LockerModel", back_populates="location")


class LockerSizeModel(Base):
    __tablename__ = "locker_sizes"

    size: Mapped[LockerSize] = mapped_column(Enum(LockerSize), primary_key=True)
    base_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class LockerModel(Base):
    __tablename__ = "lockers"

    locker_id: Mapped[str] = mapped_column(String, primary_key=True)
    location_id: Mapped[str] = mapped_column(ForeignKey("locations.location_id"), nullable=False, index=True)
    size: Mapped[LockerSize] = mapped_column(Enum(LockerSize), ForeignKey("locker_sizes.size"), nullable=False)
    locker_code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    status: Mapped[LockerStatus] = mapped_column(
        Enum(LockerStatus), nullable=False, default=LockerStatus.AVAILABLE, index=True
    )

    location = relationship("LocationModel", back_populates="lockers", lazy="joined")
    size_class = relationship("LockerSizeModel", lazy="joined")


class ReservationModel(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        # At most one ACTIVE reservation per locker, and no two ACTIVE reservations sharing an access code.
        Index(
            "uq_reservations_active_locker",
            "locker_id",
            unique=True,
            sqlite_where=_ACTIVE_ONLY,
            postgresql_where=_ACTIVE_ONLY,
        ),
        Index(
            "uq_reservations_active_access_code",
            "access_code",
            unique=True,
            sqlite_where=_ACTIVE_ONLY,
            postgresql_where=_ACTIVE_ONLY,
        ),
    )

    reservation_id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    locker_id: Mapped[str] = mapped_column(ForeignKey("lockers.locker_id"), nullable=False)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    expected_end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    extended_end_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    actual_end_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    status: Mapped[ReservationStatus] = mapped_column(Enum(ReservationStatus), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Money, nullable=False)
    extension_cost: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0.00"))
    extension_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    access_code: Mapped[str] = mapped_column(String(6), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    locker = relationship("LockerModel")


class ReservationHistoryModel(Base):
    __tablename__ = "reservation_history"

    history_id: Mapped[str] = mapped_column(String, primary_key=True)
    reservation_id: Mapped[str] = mapped_column(
        ForeignKey("reservations.reservation_id"), nullable=False, unique=True
    )
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    total_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Money, nullable=False)


class VerificationCodeModel(Base):
    __tablename__ = "verification_codes"
    __table_args__ = (
        Index("ix_verification_codes_lookup", "phone", "purpose", "code"),
    )

    code_id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    phone: Mapped[str] = mapped_column(String(16), nullable=False)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    purpose: Mapped[VerificationPurpose] = mapped_column(Enum(VerificationPurpose), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
