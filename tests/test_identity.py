import pytest
from jose import JWTError

from app.core.exceptions import ValidationError
from app.core.security import create_session_token, decode_session_token
from app.models.user import User
from app.services.user_service import check_user_exists


def test_find_or_create_creates_once(identity_provider, db_session):
    first = identity_provider.find_or_create("9876543210", "+919876543210")
    second = identity_provider.find_or_create("9876543210", "+919876543210")

    assert first.uid == second.uid
    assert first.phone_raw == "9876543210"
    assert first.phone_formatted == "+919876543210"
    assert first.created_at is not None
    assert db_session.query(User).count() == 1


def test_find_or_create_rereads_when_insert_loses_race(identity_provider, db_session):
    existing = identity_provider.create_account("9876543210", "+919876543210")
    real_find = identity_provider.find_by_phone
    calls = []

    def stale_then_real(phone_formatted):
        # First read misses, as if another request inserted right after it
        calls.append(phone_formatted)
        if len(calls) == 1:
            return None
        return real_find(phone_formatted)

    identity_provider.find_by_phone = stale_then_real

    identity = identity_provider.find_or_create("9876543210", "+919876543210")

    assert identity.uid == existing.uid
    assert len(calls) == 2
    assert db_session.query(User).count() == 1


def test_find_by_uid(identity_provider):
    created = identity_provider.create_account("9876543210", "+919876543210")

    assert identity_provider.find_by_uid(created.uid) == created
    assert identity_provider.find_by_uid("missing") is None


def test_user_exists_falls_back_to_raw_phone(identity_provider, db_session):
    db_session.add(User(id="legacy-uid", phone="9876543210", phone_formatted="+1-legacy"))
    db_session.commit()

    assert check_user_exists(identity_provider, "9876543210") is True
    assert check_user_exists(identity_provider, "9123456789") is False


def test_user_exists_requires_phone(identity_provider):
    with pytest.raises(ValidationError):
        check_user_exists(identity_provider, "")


def test_session_token_round_trip(identity_provider):
    token = identity_provider.mint_session_token("uid-123")
    assert decode_session_token(token) == "uid-123"


def test_session_token_rejects_tampering():
    token = create_session_token("uid-123")
    with pytest.raises(JWTError):
        decode_session_token(token[:-2] + ("A" if token[-2] != "A" else "B") + token[-1])


def test_pool_timeout_is_upstream_timeout(identity_provider):
    from unittest import mock
    from sqlalchemy.exc import TimeoutError as PoolTimeoutError
    from app.core.exceptions import UpstreamTimeoutError

    with mock.patch.object(identity_provider.db, "query", side_effect=PoolTimeoutError("QueuePool limit reached")):
        with pytest.raises(UpstreamTimeoutError):
            identity_provider.find_by_phone("+919876543210")


def test_connect_timeout_is_upstream_timeout(identity_provider):
    from unittest import mock
    from sqlalchemy.exc import OperationalError
    from app.core.exceptions import UpstreamTimeoutError

    error = OperationalError("SELECT", {}, Exception("connection to server timed out"))
    with mock.patch.object(identity_provider.db, "query", side_effect=error):
        with pytest.raises(UpstreamTimeoutError):
            identity_provider.find_or_create("9876543210", "+919876543210")


def test_other_database_errors_are_provider_errors(identity_provider):
    from unittest import mock
    from sqlalchemy.exc import OperationalError
    from app.core.exceptions import IdentityProviderError, UpstreamTimeoutError

    error = OperationalError("SELECT", {}, Exception("no such table: users"))
    with mock.patch.object(identity_provider.db, "query", side_effect=error):
        with pytest.raises(IdentityProviderError) as excinfo:
            identity_provider.find_by_phone("+919876543210")
    assert not isinstance(excinfo.value, UpstreamTimeoutError)


def test_refresh_failure_after_create_is_provider_error(identity_provider):
    from unittest import mock
    from sqlalchemy.exc import OperationalError
    from app.core.exceptions import IdentityProviderError

    error = OperationalError("SELECT", {}, Exception("connection reset"))
    with mock.patch.object(identity_provider.db, "refresh", side_effect=error):
        with pytest.raises(IdentityProviderError):
            identity_provider.create_account("9876543210", "+919876543210")
