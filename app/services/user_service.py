from app.core.exceptions import ValidationError
from app.core.phone import format_phone_number
from app.services.identity import IdentityProvider

def check_user_exists(identity_provider: IdentityProvider, phone: str) -> bool:
    if not phone:
        raise ValidationError("Phone number is required")

    if identity_provider.find_by_phone(format_phone_number(phone)):
        return True

    # Accounts created before phone_formatted was the lookup key
    return identity_provider.find_profile_by_raw_phone(phone) is not None
