"""
OTP record storage.

One active record per phone; put() overwrites. The store stamps created_at
at write time and exposes its clock through now(), so expiry is measured
against the same time source that created the record.
"""

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Protocol

import redis

from app.core.config import settings
from app.core.exceptions import OTPStoreError
from app.core.phone import mask_phone
from app.core.redis import CacheKeys, RedisClient
from app.core.timezone import get_utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OTPRecord:
    phone: str
    code: str
    created_at: datetime


class OTPStore(Protocol):
    def put(self, phone: str, code: str) -> OTPRecord:
        ...

    def get(self, phone: str) -> Optional[OTPRecord]:
        ...

    def delete(self, phone: str) -> None:
        ...

    def now(self) -> datetime:
        ...


class InMemoryOTPStore:
    """Process-local store. Used in tests and with OTP_STORE_BACKEND=memory."""

    def __init__(self, clock: Callable[[], datetime] = get_utc_now):
        self._clock = clock
        self._records: Dict[str, OTPRecord] = {}
        self._lock = threading.Lock()

    def put(self, phone: str, code: str) -> OTPRecord:
        record = OTPRecord(phone=phone, code=code, created_at=self._clock())
        with self._lock:
            self._records[phone] = record
        return record

    def get(self, phone: str) -> Optional[OTPRecord]:
        with self._lock:
            return self._records.get(phone)

    def delete(self, phone: str) -> None:
        with self._lock:
            self._records.pop(phone, None)

    def now(self) -> datetime:
        return self._clock()


class RedisOTPStore:
    """
    Records live under otp:{phone} as JSON.

    created_at is taken from the Redis server clock. Keys carry a retention
    TTL longer than the validity window so abandoned codes are evicted
    while an expired-but-present record can still be reported as expired.
    """

    def __init__(self, client: Optional[redis.Redis] = None, retention_seconds: Optional[int] = None):
        self._client = client
        self.retention_seconds = retention_seconds or settings.OTP_RECORD_RETENTION_SECONDS

    @property
    def client(self) -> redis.Redis:
        if self._client is not None:
            return self._client
        try:
            return RedisClient.get_client()
        except Exception as e:
            raise OTPStoreError() from e

    def _server_time(self, client: redis.Redis) -> datetime:
        seconds, microseconds = client.time()
        return datetime.fromtimestamp(int(seconds) + int(microseconds) / 1_000_000, tz=timezone.utc)

    def put(self, phone: str, code: str) -> OTPRecord:
        client = self.client
        try:
            created_at = self._server_time(client)
            value = json.dumps({"code": code, "created_at": created_at.timestamp()})
            client.setex(CacheKeys.otp(phone), self.retention_seconds, value)
        except redis.RedisError as e:
            logger.error("Failed to store OTP for %s: %s", mask_phone(phone), e)
            raise OTPStoreError() from e
        return OTPRecord(phone=phone, code=code, created_at=created_at)

    def get(self, phone: str) -> Optional[OTPRecord]:
        try:
            raw = self.client.get(CacheKeys.otp(phone))
        except redis.RedisError as e:
            logger.error("Failed to read OTP for %s: %s", mask_phone(phone), e)
            raise OTPStoreError() from e
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return OTPRecord(
                phone=phone,
                code=data["code"],
                created_at=datetime.fromtimestamp(data["created_at"], tz=timezone.utc),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Unreadable OTP record for %s: %s", mask_phone(phone), e)
            raise OTPStoreError() from e

    def delete(self, phone: str) -> None:
        try:
            self.client.delete(CacheKeys.otp(phone))
        except redis.RedisError as e:
            logger.error("Failed to delete OTP for %s: %s", mask_phone(phone), e)
            raise OTPStoreError() from e

    def now(self) -> datetime:
        try:
            return self._server_time(self.client)
        except redis.RedisError as e:
            raise OTPStoreError() from e


_store: Optional[OTPStore] = None


def get_otp_store() -> OTPStore:
    global _store
    if _store is None:
        if settings.OTP_STORE_BACKEND == "memory":
            _store = InMemoryOTPStore()
        else:
            _store = RedisOTPStore()
    return _store
