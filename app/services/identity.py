"""
Identity provider backed by the users table.

The table's unique constraint on phone_formatted is what keeps one account
per canonical phone; find_or_create falls back to a re-read when a
concurrent request wins the insert.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol
from uuid import uuid4

from fastapi import Depends
from jose import JWTError
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.exceptions import IdentityProviderError, UpstreamTimeoutError
from app.core.phone import mask_phone
from app.core.security import create_session_token
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    uid: str
    phone_formatted: str
    phone_raw: str
    created_at: datetime


class IdentityProvider(Protocol):
    def find_by_phone(self, phone_formatted: str) -> Optional[Identity]:
        ...

    def find_by_uid(self, uid: str) -> Optional[Identity]:
        ...

    def find_profile_by_raw_phone(self, phone_raw: str) -> Optional[Identity]:
        ...

    def create_account(self, phone_raw: str, phone_formatted: str) -> Identity:
        ...

    def find_or_create(self, phone_raw: str, phone_formatted: str) -> Identity:
        ...

    def mint_session_token(self, uid: str) -> str:
        ...


_TIMEOUT_MARKERS = ("timeout", "timed out")


def _provider_error(e: SQLAlchemyError) -> Exception:
    if isinstance(e, PoolTimeoutError) or (
        isinstance(e, OperationalError) and any(m in str(e).lower() for m in _TIMEOUT_MARKERS)
    ):
        return UpstreamTimeoutError("Identity provider timed out")
    return IdentityProviderError()


def _to_identity(user: User) -> Identity:
    return Identity(
        uid=user.id,
        phone_formatted=user.phone_formatted,
        phone_raw=user.phone,
        created_at=user.created_at,
    )


class SQLIdentityProvider:
    def __init__(self, db: Session):
        self.db = db

    def _first(self, *criteria) -> Optional[Identity]:
        try:
            user = self.db.query(User).filter(*criteria).first()
        except SQLAlchemyError as e:
            logger.error("User lookup failed: %s", e)
            raise _provider_error(e) from e
        return _to_identity(user) if user else None

    def find_by_phone(self, phone_formatted: str) -> Optional[Identity]:
        return self._first(User.phone_formatted == phone_formatted)

    def find_by_uid(self, uid: str) -> Optional[Identity]:
        return self._first(User.id == uid)

    def find_profile_by_raw_phone(self, phone_raw: str) -> Optional[Identity]:
        return self._first(User.phone == phone_raw)

    def create_account(self, phone_raw: str, phone_formatted: str) -> Identity:
        """Raises IntegrityError if an account for phone_formatted already exists."""
        user = User(id=str(uuid4()), phone=phone_raw, phone_formatted=phone_formatted)
        self.db.add(user)
        try:
            self.db.commit()
            self.db.refresh(user)
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Account creation failed for %s: %s", mask_phone(phone_formatted), e)
            raise _provider_error(e) from e
        logger.info("Created account %s for %s", user.id, mask_phone(phone_formatted))
        return _to_identity(user)

    def find_or_create(self, phone_raw: str, phone_formatted: str) -> Identity:
        identity = self.find_by_phone(phone_formatted)
        if identity:
            return identity

        try:
            return self.create_account(phone_raw, phone_formatted)
        except IntegrityError as e:
            logger.info("Account for %s created concurrently, re-reading", mask_phone(phone_formatted))
            identity = self.find_by_phone(phone_formatted)
            if identity is None:
                raise IdentityProviderError() from e
            return identity

    def mint_session_token(self, uid: str) -> str:
        try:
            return create_session_token(uid)
        except JWTError as e:
            logger.error("Token mint failed for %s: %s", uid, e)
            raise IdentityProviderError() from e


def get_identity_provider(db: Session = Depends(get_db)) -> IdentityProvider:
    return SQLIdentityProvider(db)
