"""
Database session management
"""
import functools
import logging

from sqlalchemy import create_engine
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.orm import sessionmaker

from workforce.core.config import settings
from workforce.core.errors import InfrastructureError
from workforce.db.base import Base

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    """Bound every store call: pool wait and (on PostgreSQL) statement runtime."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    kwargs = {"pool_timeout": settings.DB_POOL_TIMEOUT_SECONDS}
    if url.startswith("postgres"):
        kwargs["connect_args"] = {"options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"}
    return kwargs


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=False,
    **_engine_kwargs(settings.DATABASE_URL),
)

# Create all tables automatically on startup for SQLite
if "sqlite" in settings.DATABASE_URL:
    import workforce.models  # noqa: F401
    Base.metadata.create_all(bind=engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def with_read_retry(func):
    """
    Retry an idempotent read when the store connection drops.

    The wrapped function must take the Session as its first argument and must
    not write. Writes are never wrapped with this decorator.
    """
    @functools.wraps(func)
    def wrapper(db, *args, **kwargs):
        attempts = settings.DB_READ_RETRIES + 1
        for attempt in range(1, attempts + 1):
            try:
                return func(db, *args, **kwargs)
            except (OperationalError, DisconnectionError) as exc:
                db.rollback()
                if attempt >= attempts:
                    logger.error("Read %s failed after %s attempt(s): %s", func.__name__, attempt, exc)
                    raise InfrastructureError("Data store unavailable") from exc
                logger.warning("Read %s failed (attempt %s/%s), retrying: %s", func.__name__, attempt, attempts, exc)
    return wrapper
