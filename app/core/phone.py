DEFAULT_COUNTRY_CODE = "91"


def format_phone_number(phone: str) -> str:
    """
    Canonical global-format phone used as the identity lookup key.

    Best effort only: anything not recognised gets a bare "+" prefix,
    no digit or length validation happens here.
    """
    if phone.startswith("+"):
        return phone
    if len(phone) == 10:
        return f"+{DEFAULT_COUNTRY_CODE}{phone}"
    if phone.startswith(DEFAULT_COUNTRY_CODE) and len(phone) == 12:
        return f"+{phone}"
    return f"+{phone}"


def mask_phone(phone: str, visible_digits: int = 4) -> str:
    if not phone:
        return ""
    if len(phone) <= visible_digits:
        return phone
    return "*" * (len(phone) - visible_digits) + phone[-visible_digits:]
