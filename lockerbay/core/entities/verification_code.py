from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class VerificationPurpose(str, Enum):
    SIGNUP = "SIGNUP"
    LOGIN = "LOGIN"
    PHONE_UPDATE = "PHONE_UPDATE"


@dataclass(slots=True)
class VerificationCode:
    code_id: str
    phone: str
    code: str
    purpose: VerificationPurpose
    expires_at: datetime
    user_id: str | None = None
    is_used: bool = False
