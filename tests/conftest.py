import os
from datetime import datetime, timedelta, timezone

# Configure settings before importing the app
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["OTP_STORE_BACKEND"] = "memory"
os.environ["OTP_CHANNEL"] = "log"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.database import Base, get_db  # noqa: E402
from app.core.exceptions import NotificationError  # noqa: E402
from app.core.otp import get_notification_channel  # noqa: E402
from app.main import app  # noqa: E402
from app.services.identity import SQLIdentityProvider  # noqa: E402
from app.services.otp_service import OTPService  # noqa: E402
from app.services.otp_store import InMemoryOTPStore, get_otp_store  # noqa: E402


class FakeClock:
    def __init__(self):
        self.current = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class RecordingChannel:
    def __init__(self):
        self.sent = []
        self.fail = False
        self.error = None

    def send(self, phone: str, message: str) -> None:
        if self.error is not None:
            raise self.error
        if self.fail:
            raise NotificationError("Failed to send OTP")
        self.sent.append((phone, message))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryOTPStore(clock=clock)


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def identity_provider(db_session):
    return SQLIdentityProvider(db_session)


@pytest.fixture
def service(store, channel, identity_provider):
    return OTPService(store=store, channel=channel, identity_provider=identity_provider)


@pytest.fixture
def client(store, channel, db_session):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_otp_store] = lambda: store
    app.dependency_overrides[get_notification_channel] = lambda: channel
    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
