from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    APP_ENV: str = "development"

    DATABASE_URL: str = "sqlite:///./videosalarm.db"

    # Session tokens handed to the mobile app after OTP verification
    JWT_SECRET_KEY: str
    SESSION_TOKEN_EXPIRE_HOURS: int = 24

    # OTP
    OTP_EXPIRY_SECONDS: int = 300
    OTP_RECORD_RETENTION_SECONDS: int = 3600
    OTP_STORE_BACKEND: str = "redis"  # "redis" or "memory"
    OTP_CHANNEL: str = "sms"  # "sms" or "log"

    # Pre-production bypass for store reviewers. Empty string disables it.
    OTP_DEMO_NUMBER: str = "9057290632"
    OTP_DEMO_CODE: str = "123456"

    # SMS gateway (sms24hours)
    SMS_API_URL: str = "https://smpp1.sms24hours.com/SMSApi/send"
    SMS_USER_ID: str = ""
    SMS_PASSWORD: str = ""
    SMS_SENDER_ID: str = "VALARM"
    SMS_DLT_ENTITY_ID: str = ""
    SMS_DLT_TEMPLATE_ID: str = ""

    UPSTREAM_TIMEOUT_SECONDS: float = 5.0
    DATABASE_TIMEOUT_SECONDS: int = 5

    # Redis Configuration
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0

    RATE_LIMIT_ENABLED: bool = True

    # Comma-separated
    CORS_ORIGINS: str = "https://www.videosalarm.com,https://videosalarm.com"

    class Config:
        env_file = ".env"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

settings = Settings()
