from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import settings


def engine_options(database_url: str, timeout: int) -> dict:
    """Connect and pool-checkout timeouts for the given backend"""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        options = {"connect_args": {"check_same_thread": False, "timeout": timeout}}
        # In-memory sqlite uses a singleton pool that takes no pool_timeout
        if url.database and url.database != ":memory:":
            options["pool_timeout"] = timeout
        return options

    return {
        "connect_args": {"connect_timeout": timeout},
        "pool_timeout": timeout,
    }


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    **engine_options(settings.DATABASE_URL, settings.DATABASE_TIMEOUT_SECONDS),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
