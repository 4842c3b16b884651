"""
Workforce Backend - Main Application Entry Point
"""
import logging
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from sqlalchemy.exc import DisconnectionError, OperationalError, ProgrammingError, TimeoutError as PoolTimeoutError

from workforce.api.router import api_router
from workforce.core.config import settings
from workforce.core.errors import (
    AppError,
    app_error_handler,
    http_exception_handler,
    validation_exception_handler,
    store_exception_handler,
    generic_exception_handler,
)
from workforce.core.logging import setup_logging
from workforce.core.security import hash_password
from workforce.db.session import SessionLocal
from workforce.models.user import User, Role
from workforce.utils.identifiers import normalize_identifier

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite") or not parsed.password:
        return url
    netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))


# Create FastAPI app
app = FastAPI(
    title="Workforce Backend",
    description="Multi-tenant workforce management: companies, branches, module access and geofenced attendance",
    version=settings.VERSION or "1.0.0"
)

origins = settings.get_allowed_origins_list()
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(OperationalError, store_exception_handler)
app.add_exception_handler(DisconnectionError, store_exception_handler)
app.add_exception_handler(PoolTimeoutError, store_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL at startup so it can be verified against Alembic."""
    logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))


def bootstrap_master_operator(db) -> bool:
    """
    Create the first platform operator from settings when none exists.

    Returns True when an operator was created.
    """
    exists = db.query(User.id).filter(
        User.company_id.is_(None),
        User.role.in_([Role.MASTER.value, Role.ADMIN.value]),
    ).first()
    if exists:
        logger.info("Master operator already exists, skipping bootstrap")
        return False

    username = normalize_identifier(settings.INITIAL_MASTER_USERNAME)
    is_email = "@" in username
    db.add(User(
        email=username if is_email else None,
        phone=None if is_email else username,
        full_name="Platform Master",
        role=Role.MASTER.value,
        password_hash=hash_password(settings.INITIAL_MASTER_PASSWORD),
        is_active=True,
    ))
    db.commit()
    logger.info("Initial master operator created: %s", username)
    logger.info("Password: [set via INITIAL_MASTER_PASSWORD environment variable]")
    return True


@app.on_event("startup")
def bootstrap_initial_master() -> None:
    db = SessionLocal()
    try:
        bootstrap_master_operator(db)
    except (OperationalError, ProgrammingError) as e:
        # Tables may not exist yet before the first migration
        db.rollback()
        if "no such table" in str(e).lower() or "does not exist" in str(e).lower():
            logger.warning("Database tables not ready yet, skipping master bootstrap. Run alembic upgrade head")
        else:
            logger.error("Database error during master bootstrap: %s", e)
    finally:
        db.close()
