from datetime import datetime
from pydantic import BaseModel, field_validator
from typing import Optional, Union

def _digits_to_str(value: Union[str, int, None]) -> Optional[str]:
    # Mobile clients sometimes send phone/otp as JSON numbers
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class PhoneRequest(BaseModel):
    phone: Optional[str] = None

    @field_validator("phone", mode="before")
    @classmethod
    def coerce_phone(cls, value):
        return _digits_to_str(value)


class VerifyOtpRequest(BaseModel):
    phone: Optional[str] = None
    otp: Optional[str] = None

    @field_validator("phone", "otp", mode="before")
    @classmethod
    def coerce_digits(cls, value):
        return _digits_to_str(value)


class MessageResponse(BaseModel):
    message: str


class VerifyOtpResponse(BaseModel):
    token: str
    uid: str
    message: str = "OTP verified and token generated"


class UserExistsResponse(BaseModel):
    exists: bool


class MeResponse(BaseModel):
    uid: str
    phone: str
    phone_formatted: str
    created_at: Optional[datetime] = None
