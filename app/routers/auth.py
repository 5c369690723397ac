import logging

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.exceptions import RateLimitError, UserNotFoundError
from app.core.redis import RateLimiter
from app.core.security import get_current_uid
from app.schemas.auth import (
    MeResponse,
    MessageResponse,
    PhoneRequest,
    UserExistsResponse,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from app.services.identity import IdentityProvider, get_identity_provider
from app.services.otp_service import OTPService, get_otp_service
from app.services.user_service import check_user_exists

router = APIRouter(tags=["auth"])

logger = logging.getLogger(__name__)


def _enforce_rate_limit(phone: str, action: str, max_requests: int, window_seconds: int, detail: str):
    if not settings.RATE_LIMIT_ENABLED or not phone:
        return

    is_allowed, _ = RateLimiter.check_rate_limit(
        identifier=phone,
        action=action,
        max_requests=max_requests,
        window_seconds=window_seconds
    )

    if not is_allowed:
        retry_after = RateLimiter.get_remaining_time(phone, action)
        raise RateLimitError(
            f"{detail} Please try again in {retry_after} seconds.",
            retry_after=retry_after,
        )


@router.post("/sendOtp", response_model=MessageResponse)
def send_otp(payload: PhoneRequest, service: OTPService = Depends(get_otp_service)):
    # Rate limit: max 3 OTP requests per 10 minutes
    _enforce_rate_limit(payload.phone, "send_otp", 3, 600, "Too many OTP requests.")

    service.issue(payload.phone)
    return MessageResponse(message="OTP sent")


@router.post("/verifyOtp", response_model=VerifyOtpResponse)
def verify_otp(payload: VerifyOtpRequest, service: OTPService = Depends(get_otp_service)):
    # Rate limit: max 10 OTP verification attempts per 5 minutes
    _enforce_rate_limit(payload.phone, "verify_otp", 10, 300, "Too many verification attempts.")

    result = service.verify(payload.phone, payload.otp)
    return VerifyOtpResponse(token=result.token, uid=result.uid)


@router.post("/checkUserExists", response_model=UserExistsResponse)
def user_exists(
    payload: PhoneRequest,
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    return UserExistsResponse(exists=check_user_exists(identity_provider, payload.phone))


@router.get("/me", response_model=MeResponse)
def me(
    uid: str = Depends(get_current_uid),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
):
    identity = identity_provider.find_by_uid(uid)
    if identity is None:
        raise UserNotFoundError()

    return MeResponse(
        uid=identity.uid,
        phone=identity.phone_raw,
        phone_formatted=identity.phone_formatted,
        created_at=identity.created_at,
    )
