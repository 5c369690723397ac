from datetime import datetime, timedelta, timezone

IST = timezone(timedelta(hours=5, minutes=30), name="IST")


def get_ist_now() -> datetime:
    """Naive IST timestamp, the convention for every DateTime column."""
    return datetime.now(IST).replace(tzinfo=None)


def get_utc_now() -> datetime:
    return datetime.now(timezone.utc)
