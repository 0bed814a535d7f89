from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from lockerbay.core.entities.verification_code import VerificationCode, VerificationPurpose
from lockerbay.core.repositories.verification_code_repository import VerificationCodeRepository
from lockerbay.infrastructure.models.models import VerificationCodeModel


class VerificationCodeRepositoryImpl(VerificationCodeRepository):
    def __init__(self, db: Session) -> None:
        self._db = db

    def add(self, code: VerificationCode) -> None:
        self._db.add(
            VerificationCodeModel(
                code_id=code.code_id,
                user_id=code.user_id,
                phone=code.phone,
                code=code.code,
                purpose=code.purpose,
                expires_at=code.expires_at,
                is_used=code.is_used,
            )
        )
        self._db.flush()

    def consume(self, *, phone: str, code: str, purpose: VerificationPurpose, now: datetime) -> bool:
        candidate = (
            select(VerificationCodeModel.code_id)
            .where(VerificationCodeModel.phone == phone)
            .where(VerificationCodeModel.code == code)
            .where(VerificationCodeModel.purpose == purpose)
            .where(VerificationCodeModel.is_used.is_(False))
            .where(VerificationCodeModel.expires_at > now)
            .order_by(VerificationCodeModel.expires_at.desc())
            .limit(1)
        )
        code_id = self._db.execute(candidate).scalar_one_or_none()
        if code_id is None:
            return False

        # Re-check the flag in the UPDATE itself: of two concurrent consumers only one changes the row.
        stmt = (
            update(VerificationCodeModel)
            .where(VerificationCodeModel.code_id == code_id)
            .where(VerificationCodeModel.is_used.is_(False))
            .values(is_used=True)
            .execution_options(synchronize_session=False)
        )
        return self._db.execute(stmt).rowcount == 1

    def purge_expired(self, now: datetime) -> int:
        stmt = (
            delete(VerificationCodeModel)
            .where(VerificationCodeModel.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return self._db.execute(stmt).rowcount
