import logging
import re
import secrets
from typing import Optional, Protocol

import httpx

from app.core.config import settings
from app.core.exceptions import NotificationError, UpstreamTimeoutError
from app.core.phone import mask_phone

logger = logging.getLogger(__name__)

OTP_MESSAGE_TEMPLATE = (
    "Dear User, your OTP is {otp}. Do not share it with anyone. "
    "Valid for 5 minutes. -Team Videos Alarm"
)


def generate_otp() -> str:
    # 100000-999999: six digits, never a leading zero
    return str(secrets.randbelow(900000) + 100000)


def is_demo_number(phone: str) -> bool:
    """The one phone number with a fixed code, for app store review."""
    return bool(settings.OTP_DEMO_NUMBER) and phone == settings.OTP_DEMO_NUMBER


def build_otp_message(otp: str) -> str:
    return OTP_MESSAGE_TEMPLATE.format(otp=otp)


def _mask_digits(message: str) -> str:
    return re.sub(r"\d{3,}", lambda m: "*" * (len(m.group(0)) - 2) + m.group(0)[-2:], message)


class NotificationChannel(Protocol):
    def send(self, phone: str, message: str) -> None:
        ...


class SmsGatewayChannel:
    """Sends the OTP text through the sms24hours HTTP API."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url or settings.SMS_API_URL
        self.timeout = timeout if timeout is not None else settings.UPSTREAM_TIMEOUT_SECONDS
        self.transport = transport

    def _params(self, phone: str, message: str) -> dict:
        return {
            "userid": settings.SMS_USER_ID,
            "password": settings.SMS_PASSWORD,
            "sendMethod": "quick",
            "mobile": phone,
            "msg": message,
            "senderid": settings.SMS_SENDER_ID,
            "msgType": "text",
            "dltEntityId": settings.SMS_DLT_ENTITY_ID,
            "dltTemplateId": settings.SMS_DLT_TEMPLATE_ID,
            "duplicatecheck": "true",
            "output": "json",
        }

    def send(self, phone: str, message: str) -> None:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(self.url, params=self._params(phone, message))
        except httpx.TimeoutException as e:
            logger.error("SMS gateway timed out after %ss for %s", self.timeout, mask_phone(phone))
            raise UpstreamTimeoutError("SMS gateway timed out") from e
        except httpx.HTTPError as e:
            logger.error("SMS gateway error for %s: %s", mask_phone(phone), str(e))
            raise NotificationError("Failed to send OTP") from e

        if response.status_code not in (200, 201):
            logger.warning(
                "SMS gateway failed [%s] for %s: %s",
                response.status_code, mask_phone(phone), response.text,
            )
            raise NotificationError("Failed to send OTP")

        logger.info("OTP sent to %s via SMS", mask_phone(phone))


class LogChannel:
    """Development channel: writes the message to the log instead of sending it."""

    def send(self, phone: str, message: str) -> None:
        logger.info("OTP log channel to=%s msg=%s", mask_phone(phone), _mask_digits(message))


def get_notification_channel() -> NotificationChannel:
    if settings.OTP_CHANNEL == "log":
        return LogChannel()
    return SmsGatewayChannel()
