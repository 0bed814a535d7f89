from __future__ import annotations

import logging
from typing import Any, Optional

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from lockerbay.core.use_cases.verification_service import mask_phone
from lockerbay.infrastructure.config import Settings

logger = logging.getLogger(__name__)


class TwilioSmsSender:
    """
    SMS delivery through the Twilio REST API.

    Without an account SID and auth token nothing is delivered: the attempt is logged with
    the number masked and the message withheld, and the call reports not-sent. Gateway
    failures are logged and reported the same way, never raised.
    """

    def __init__(
            self,
            *,
            account_sid: str,
            auth_token: str,
            from_number: str,
            client: Optional[Any] = None,
    ) -> None:
        self.from_number = from_number
        self.client = client
        if self.client is None and account_sid and auth_token:
            self.client = Client(account_sid, auth_token)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TwilioSmsSender":
        return cls(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_from_number,
        )

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def send(self, phone: str, message: str) -> bool:
        if self.client is None:
            logger.warning("Twilio credentials not configured, message to %s not sent", mask_phone(phone))
            return False

        try:
            sent = self.client.messages.create(body=message, from_=self.from_number, to=phone)
        except TwilioRestException as e:
            logger.error("Twilio rejected SMS to %s: %s", mask_phone(phone), e.msg)
            return False

        logger.info("SMS sent to %s (sid=%s)", mask_phone(phone), sent.sid)
        return True
