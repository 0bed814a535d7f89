from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from lockerbay.core.entities.verification_code import VerificationCode, VerificationPurpose


class VerificationCodeRepository(ABC):
    @abstractmethod
    def add(self, code: VerificationCode) -> None:
        raise NotImplementedError

    @abstractmethod
    def consume(self, *, phone: str, code: str, purpose: VerificationPurpose, now: datetime) -> bool:
        """
        Mark one matching, unused, unexpired code as used.
        Returns True only for the transaction whose conditional update flipped the flag.
        """
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self, now: datetime) -> int:
        """Delete codes whose expiry has passed. Returns the number of rows removed."""
        raise NotImplementedError
