"""
OTP Service
Handles OTP issuance, verification and the account reconciliation that
follows a successful verification
"""

import hmac
import logging
from dataclasses import dataclass

from fastapi import Depends

from app.core.config import settings
from app.core.exceptions import (
    InvalidOTPError,
    OTPExpiredError,
    OTPNotFoundError,
    ValidationError,
)
from app.core.otp import (
    NotificationChannel,
    build_otp_message,
    generate_otp,
    get_notification_channel,
    is_demo_number,
)
from app.core.phone import format_phone_number, mask_phone
from app.services.identity import IdentityProvider, get_identity_provider
from app.services.otp_store import OTPRecord, OTPStore, get_otp_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifyResult:
    token: str
    uid: str


class OTPService:
    """Service for OTP operations"""

    def __init__(
        self,
        store: OTPStore,
        channel: NotificationChannel,
        identity_provider: IdentityProvider,
    ):
        self.store = store
        self.channel = channel
        self.identity_provider = identity_provider

    def issue(self, phone: str) -> OTPRecord:
        """
        Generate an OTP for phone, store it and send it.

        The stored code stays valid if sending fails; NotificationError
        (or UpstreamTimeoutError) is raised after the write.
        """
        if not phone or not phone.strip():
            raise ValidationError("Phone number is required")

        otp = settings.OTP_DEMO_CODE if is_demo_number(phone) else generate_otp()

        record = self.store.put(phone, otp)

        self.channel.send(phone, build_otp_message(otp))
        logger.info("OTP issued for %s", mask_phone(phone))

        return record

    def verify(self, phone: str, otp_input: str) -> VerifyResult:
        """
        Check otp_input against the active record, then find or create the
        account for the phone and mint a session token.

        A wrong code is reported before expiry is considered.
        """
        if not phone or not otp_input:
            raise ValidationError("Phone and OTP are required")

        record = self.store.get(phone)
        if record is None:
            raise OTPNotFoundError()

        expected = settings.OTP_DEMO_CODE if is_demo_number(phone) else record.code
        if not hmac.compare_digest(otp_input.encode(), expected.encode()):
            # Record is kept so the user can retry within the window
            raise InvalidOTPError()

        elapsed = (self.store.now() - record.created_at).total_seconds()
        if elapsed > settings.OTP_EXPIRY_SECONDS:
            self.store.delete(phone)
            raise OTPExpiredError()

        formatted_phone = format_phone_number(phone)
        identity = self.identity_provider.find_or_create(phone, formatted_phone)
        token = self.identity_provider.mint_session_token(identity.uid)

        self.store.delete(phone)
        logger.info("OTP verified for %s (uid %s)", mask_phone(formatted_phone), identity.uid)

        return VerifyResult(token=token, uid=identity.uid)


def get_otp_service(
    store: OTPStore = Depends(get_otp_store),
    channel: NotificationChannel = Depends(get_notification_channel),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> OTPService:
    return OTPService(store=store, channel=channel, identity_provider=identity_provider)
