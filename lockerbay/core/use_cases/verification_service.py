from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Protocol

from lockerbay.core.clock import utcnow
from lockerbay.core.entities.verification_code import VerificationCode, VerificationPurpose
from lockerbay.core.errors import InvalidInputError, TransientError
from lockerbay.core.repositories.unit_of_work import UnitOfWork
from lockerbay.core.use_cases.access_code_issuer import random_numeric_code

logger = logging.getLogger(__name__)

_PHONE_RE = re.compile(r"^\+?\d{7,15}$")
_CODE_RE = re.compile(r"^\d{6}$")


class SmsSender(Protocol):
    """
    Outbound SMS transport.
    """

    def send(self, phone: str, message: str) -> bool:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class IssuedVerificationCode:
    code_id: str
    code: str
    expires_at: datetime
    sent: bool


def normalize_phone(phone: str) -> str:
    if not isinstance(phone, str):
        raise InvalidInputError("phone must be a string")
    normalized = re.sub(r"[\s\-()]", "", phone)
    if not _PHONE_RE.match(normalized):
        raise InvalidInputError("phone must contain 7 to 15 digits")
    return normalized


def parse_purpose(purpose: str | VerificationPurpose) -> VerificationPurpose:
    try:
        return VerificationPurpose(purpose)
    except ValueError as e:
        raise InvalidInputError(f"Unsupported verification purpose: {purpose!r}") from e


def mask_phone(phone: str) -> str:
    return f"{'*' * max(0, len(phone) - 4)}{phone[-4:]}"


class VerificationService:
    """
    One-time phone verification codes for the signup / login / phone-update flows.

    Requesting a code never invalidates earlier outstanding codes for the same phone and
    purpose. Verifying reports a bare boolean: wrong, expired and already-used codes are
    indistinguishable to the caller.
    """

    def __init__(
            self,
            *,
            uow: UnitOfWork,
            sms_sender: SmsSender,
            ttl: timedelta = timedelta(minutes=10),
            clock: Callable[[], datetime] = utcnow,
            retries: int = 1,
    ) -> None:
        self._uow = uow
        self._sms_sender = sms_sender
        self._ttl = ttl
        self._clock = clock
        self._retries = retries

    def request_code(
            self,
            phone: str,
            purpose: str | VerificationPurpose,
            user_id: str | None = None,
    ) -> IssuedVerificationCode:
        phone = normalize_phone(phone)
        purpose = parse_purpose(purpose)

        code = VerificationCode(
            code_id=str(uuid.uuid4()),
            phone=phone,
            code=random_numeric_code(),
            purpose=purpose,
            expires_at=self._clock() + self._ttl,
            user_id=user_id,
        )

        def _store() -> None:
            with self._uow:
                self._uow.verification_codes.add(code)
                self._uow.commit()

        self._with_retry(_store)
        logger.info("Issued %s verification code for %s", purpose.value, mask_phone(phone))

        minutes = int(self._ttl.total_seconds() // 60)
        sent = self._send(phone, f"Your verification code is {code.code}. Valid for {minutes} minutes.")
        return IssuedVerificationCode(code_id=code.code_id, code=code.code, expires_at=code.expires_at, sent=sent)

    def verify(self, phone: str, code: str, purpose: str | VerificationPurpose) -> bool:
        try:
            phone = normalize_phone(phone)
            purpose = parse_purpose(purpose)
        except InvalidInputError:
            return False
        if not isinstance(code, str) or not _CODE_RE.match(code):
            return False

        def _consume() -> bool:
            with self._uow:
                consumed = self._uow.verification_codes.consume(
                    phone=phone, code=code, purpose=purpose, now=self._clock()
                )
                self._uow.commit()
                return consumed

        valid = self._with_retry(_consume)
        if valid:
            logger.info("Verified %s code for %s", purpose.value, mask_phone(phone))
        else:
            logger.info("Rejected %s code for %s", purpose.value, mask_phone(phone))
        return valid

    def purge_expired(self) -> int:
        def _purge() -> int:
            with self._uow:
                removed = self._uow.verification_codes.purge_expired(self._clock())
                self._uow.commit()
                return removed

        removed = self._with_retry(_purge)
        logger.info("Purged %s expired verification code(s)", removed)
        return removed

    def _with_retry(self, operation: Callable[[], object]):
        attempt = 0
        while True:
            try:
                return operation()
            except TransientError:
                if attempt >= self._retries:
                    raise
                attempt += 1
                logger.warning("Transient store error on verification code, retrying (%s/%s)", attempt, self._retries)

    def _send(self, phone: str, message: str) -> bool:
        try:
            return bool(self._sms_sender.send(phone, message))
        except Exception:
            logger.exception("Failed to send verification SMS to %s", mask_phone(phone))
            return False
