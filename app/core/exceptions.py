"""
Error taxonomy for the auth workflow.

Services raise these; the handler registered in app.main renders them as
{"message": ..., "error": kind} with the class's status code.
"""

from typing import Optional


class AppError(Exception):
    status_code: int = 500
    kind: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def headers(self) -> Optional[dict]:
        return None


class ValidationError(AppError):
    status_code = 400
    kind = "validation_error"
    default_message = "Invalid request"


class OTPNotFoundError(AppError):
    status_code = 400
    kind = "otp_not_found"
    default_message = "OTP not found or already used"


class InvalidOTPError(AppError):
    status_code = 400
    kind = "invalid_otp"
    default_message = "Invalid OTP"


class OTPExpiredError(AppError):
    status_code = 400
    kind = "otp_expired"
    default_message = "OTP expired"


class RateLimitError(AppError):
    status_code = 429
    kind = "rate_limited"
    default_message = "Too many requests"

    def __init__(self, message: Optional[str] = None, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after

    @property
    def headers(self) -> Optional[dict]:
        return {"Retry-After": str(self.retry_after)}


class NotificationError(AppError):
    status_code = 500
    kind = "notification_failed"
    default_message = "Failed to send OTP"


class IdentityProviderError(AppError):
    status_code = 500
    kind = "identity_provider_error"
    default_message = "Identity provider request failed"


class OTPStoreError(AppError):
    status_code = 500
    kind = "otp_store_unavailable"
    default_message = "OTP store unavailable"


class UpstreamTimeoutError(AppError):
    status_code = 504
    kind = "upstream_timeout"
    default_message = "Upstream service timed out"


class UserNotFoundError(AppError):
    status_code = 404
    kind = "user_not_found"
    default_message = "User not found"
