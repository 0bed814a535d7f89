from __future__ import annotations

import logging
import secrets

from lockerbay.core.errors import InternalError
from lockerbay.core.repositories.reservation_repository import ReservationRepository

logger = logging.getLogger(__name__)

CODE_LENGTH = 6


def random_numeric_code(length: int = CODE_LENGTH) -> str:
    """Numeric code with no leading zero, drawn from the OS CSPRNG."""
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


class AccessCodeIssuer:
    """
    Issues the 6-digit code a renter types on the locker keypad.

    Codes are unique among ACTIVE reservations at issuance time. The partial unique index on
    reservations(access_code) covers the window between this check and commit.
    """

    def __init__(self, *, reservation_repo: ReservationRepository, max_attempts: int = 20) -> None:
        self._reservation_repo = reservation_repo
        self._max_attempts = max_attempts

    def generate(self) -> str:
        for _ in range(self._max_attempts):
            code = random_numeric_code()
            if not self._reservation_repo.access_code_in_use(code):
                return code
            logger.debug("Access code collision with an active reservation, drawing again")

        raise InternalError("Could not issue a unique access code")
