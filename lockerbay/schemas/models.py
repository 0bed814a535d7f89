from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel


class Size(Enum):
    SMALL = 'SMALL'
    MEDIUM = 'MEDIUM'
    LARGE = 'LARGE'


class LockerStatus(Enum):
    AVAILABLE = 'AVAILABLE'
    OCCUPIED = 'OCCUPIED'
    MAINTENANCE = 'MAINTENANCE'


class Status(Enum):
    ACTIVE = 'ACTIVE'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


class Purpose(Enum):
    SIGNUP = 'SIGNUP'
    LOGIN = 'LOGIN'
    PHONE_UPDATE = 'PHONE_UPDATE'


class ReserveRequest(BaseModel):
    locker_id: str
    duration_hours: float


class ReserveResponse(BaseModel):
    reservation_id: str
    locker_id: str
    access_code: str
    expires_at: datetime
    total_cost: Decimal
    status: Status


class ExtendRequest(BaseModel):
    additional_hours: float


class ExtendResponse(BaseModel):
    reservation_id: str
    new_end_time: datetime
    additional_cost: Decimal
    total_cost: Decimal
    extension_count: int


class ReleaseResponse(BaseModel):
    reservation_id: str
    total_hours: int
    total_cost: Decimal


class Reservation(BaseModel):
    reservation_id: str
    locker_id: str
    status: Status
    start_time: datetime
    expected_end_time: datetime
    extended_end_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    total_cost: Decimal
    extension_count: int
    access_code: Optional[str] = None
    minutes_left: Optional[int] = None
    expiring_soon: Optional[bool] = None


class AvailableLockers(BaseModel):
    locker_ids: List[str]


class LocationSummary(BaseModel):
    location_id: str
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    popularity_score: int
    available_count: int
    available_by_size: Dict[Size, int]


class AvailableLocker(BaseModel):
    locker_id: str
    locker_code: str


class SizeAvailability(BaseModel):
    size: Size
    base_price: Decimal
    description: Optional[str] = None
    available_count: int
    lockers: List[AvailableLocker]


class LocationDetail(BaseModel):
    location_id: str
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    sizes: List[SizeAvailability]


class MaintenanceRequest(BaseModel):
    enabled: bool


class Locker(BaseModel):
    locker_id: str
    status: LockerStatus


class VerificationCodeRequest(BaseModel):
    phone: str
    purpose: Purpose = Purpose.SIGNUP


class VerificationCodeIssued(BaseModel):
    sent: bool
    expires_at: datetime
    otp: Optional[str] = None


class VerifyCodeRequest(BaseModel):
    phone: str
    code: str
    purpose: Purpose = Purpose.SIGNUP


class VerifyCodeResult(BaseModel):
    valid: bool
