"""Main FastAPI application."""

import logging
import re
import time
from contextlib import asynccontextmanager

import sqlalchemy.exc
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from .api import (
    actions_router,
    auth_router,
    menu_actions_router,
    menus_router,
    permissions_router,
    roles_router,
)
from .core.config import settings
from .core.logging_config import setup_logging
from .database import DATABASE_URL, SessionLocal, create_tables, engine, get_db
from .exceptions import SocietyAccessError
from .middleware.exception_handler import integrity_error_handler, society_access_exception_handler
from .middleware.request_context import RequestContextMiddleware
from .repositories.grant_repository import GrantRepository
from .services import audit_service

setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def _mask_url(url: str) -> str:
    """Mask the password in a database URL for logging."""
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


def _check_database() -> None:
    """Fail startup with a readable message when the database is unreachable."""
    masked = _mask_url(DATABASE_URL)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.critical(
            "Database connection failed.\n"
            f"  DATABASE_URL: {masked}\n"
            f"  Error: {e}"
        )
        raise SystemExit(1) from e
    logger.info("Database connection verified: %s", masked)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_production_config()
    for problem in settings.insecure_settings():
        logger.warning(problem)

    _check_database()
    create_tables()

    if settings.seed_defaults:
        from .core.seeder import seed_defaults

        db = SessionLocal()
        try:
            seeded = seed_defaults(db)
            if seeded:
                logger.info("First startup: seeded %d grants", seeded)
        finally:
            db.close()

    if settings.audit_retention_days > 0:
        db = SessionLocal()
        try:
            purged = audit_service.purge_old_entries(db, days=settings.audit_retention_days)
            if purged:
                logger.info(
                    "Purged %d audit log entries older than %d days",
                    purged, settings.audit_retention_days,
                )
        finally:
            db.close()

    yield


app = FastAPI(
    title="Society Access API",
    description=(
        "Role, menu and action based access control for the society management "
        "application. Login returns the caller's menus and a prebuilt permission "
        "map; the system-management endpoints edit roles, actions, menus, the "
        "menu-action map and role grants.\n\n"
        "**Authentication:** every endpoint except login, first registration and "
        "health requires a `Bearer` token in the `Authorization` header."
    ),
    version=API_VERSION,
    lifespan=lifespan,
)

# Outermost first: CORS wraps request context.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(SocietyAccessError, society_access_exception_handler)
app.add_exception_handler(sqlalchemy.exc.IntegrityError, integrity_error_handler)

app.include_router(auth_router)
app.include_router(roles_router)
app.include_router(actions_router)
app.include_router(menus_router)
app.include_router(menu_actions_router)
app.include_router(permissions_router)

logger.info(
    "Society Access API configured | env=%s | db=%s | cors=%s",
    settings.environment.value,
    DATABASE_URL.split(":", 1)[0],
    ",".join(settings.get_cors_origins()),
)


@app.get("/")
def root():
    return {
        "name": "Society Access API",
        "version": API_VERSION,
        "status": "running",
    }


_startup_time = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Database status, uptime and grant count.

    Answers "degraded" instead of 5xx when the database fails, so load
    balancers can keep probing.
    """
    db_status = "ok"
    grant_count = 0
    try:
        db.execute(text("SELECT 1"))
        grant_count = GrantRepository(db).count()
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Health check database failure: %s", e)
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "uptime_seconds": round(time.monotonic() - _startup_time),
        "version": API_VERSION,
        "grant_count": grant_count,
    }
