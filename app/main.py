import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import AppError
from app.core.redis import RedisClient
from app.core.timezone import get_utc_now
from app.routers import auth

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Startup and shutdown events"""
    print("\n" + "=" * 50)
    print("  Starting VideosAlarm API...")
    print("=" * 50)
    print(f"  Environment: {settings.APP_ENV}")
    print("-" * 50)

    try:
        from sqlalchemy import text
        from app.core.database import Base, engine
        from app.models import user  # noqa: F401  registers the users table
        Base.metadata.create_all(bind=engine)
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("  [OK]   Database")
    except Exception as e:
        print(f"  [FAIL] Database  - {e}")

    if settings.OTP_STORE_BACKEND == "redis" or settings.RATE_LIMIT_ENABLED:
        try:
            RedisClient.get_client()
            print(f"  [OK]   Redis     ({settings.REDIS_HOST}:{settings.REDIS_PORT})")
        except Exception as e:
            print(f"  [FAIL] Redis     - {e}")
    else:
        print("  [SKIP] Redis     (memory OTP store)")

    if settings.OTP_CHANNEL == "sms":
        try:
            import httpx
            resp = httpx.head(settings.SMS_API_URL, timeout=settings.UPSTREAM_TIMEOUT_SECONDS)
            print(f"  [OK]   SMS       (status {resp.status_code})")
        except Exception as e:
            print(f"  [FAIL] SMS       - {e}")
    else:
        print(f"  [SKIP] SMS       (channel: {settings.OTP_CHANNEL})")

    print("-" * 50)
    print("  VideosAlarm API is ready!")
    print("=" * 50 + "\n")
    yield

    print("\nShutting down VideosAlarm API...")
    RedisClient.close()


is_production = settings.APP_ENV == "production"

app = FastAPI(
    title="VideosAlarm API",
    lifespan=lifespan,
    docs_url=None if is_production else "/docs",
    redoc_url=None if is_production else "/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed [%s]: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "error": exc.kind},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError):
    if any(err.get("type") == "json_invalid" for err in exc.errors()):
        message = "Invalid JSON payload"
    else:
        message = "Invalid request payload"
    return JSONResponse(
        status_code=400,
        content={"message": message, "error": "validation_error"},
    )


@app.get("/health")
def health_check():
    return {"status": "ok", "timestamp": get_utc_now().isoformat()}


app.include_router(auth.router)
