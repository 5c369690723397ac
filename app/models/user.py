from sqlalchemy import Column, String, DateTime
from app.core.database import Base
from app.core.timezone import get_ist_now

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    phone = Column(String(32), nullable=False, index=True)
    # Unique so concurrent first logins for one number cannot create two accounts
    phone_formatted = Column(String(32), nullable=False, unique=True)
    created_at = Column(DateTime, default=get_ist_now, nullable=False)
