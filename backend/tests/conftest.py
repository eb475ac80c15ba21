"""Shared test fixtures for the society access test suite.

Tests run against a throw-away SQLite file. Every test starts from freshly
created tables holding the default seed (actions, roles, menus, menu-action
map and grants), so ids are predictable: the Administrator, Manager and User
roles are 1, 2 and 3 and the Dashboard menu is 1.
"""

import os
import tempfile

# Point the app at the test database before any app imports.
_DB_FILE = os.path.join(tempfile.mkdtemp(prefix="society-access-tests-"), "test.db")
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL", f"sqlite:///{_DB_FILE}")
os.environ["LOG_FORMAT"] = "text"
os.environ["ENVIRONMENT"] = "development"

import pytest
from fastapi.testclient import TestClient

from society_access.core.config import settings
from society_access.core.seeder import MANAGER_ROLE, USER_ROLE, seed_defaults
from society_access.core.token_factory import create_token
from society_access.database import Base, SessionLocal, engine, get_db
from society_access import models  # noqa: F401  (registers models on Base)
from society_access.main import app
from society_access.middleware.request_context import _rate_buckets
from society_access.models.access import Role
from society_access.services import auth_service

ADMIN_PASSWORD = "admin-pass-123"
USER_PASSWORD = "user-pass-123"


@pytest.fixture(autouse=True)
def _fresh_database():
    """Recreate all tables and reseed before each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_defaults(db)
    finally:
        db.close()
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    """TestClient with the DB dependency bound to the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    _rate_buckets.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _role_id(db, role_name: str) -> int:
    return db.query(Role).filter(Role.role_name == role_name).one().role_id


def _headers_for(user) -> dict:
    token = create_token(
        user_id=user.user_id,
        role_id=user.role_id,
        role_name=user.role.role_name,
        secret=settings.jwt_secret_key,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_user(db):
    """The first registered account, which receives the Administrator role."""
    return auth_service.register_user(db, "admin", ADMIN_PASSWORD, full_name="Site Admin")


@pytest.fixture()
def admin_headers(admin_user) -> dict:
    return _headers_for(admin_user)


@pytest.fixture()
def plain_user(db, admin_user):
    return auth_service.register_user(
        db, "resident", USER_PASSWORD, full_name="Plain Resident", role_id=_role_id(db, USER_ROLE)
    )


@pytest.fixture()
def user_headers(plain_user) -> dict:
    return _headers_for(plain_user)


@pytest.fixture()
def manager_user(db, admin_user):
    return auth_service.register_user(
        db, "manager", USER_PASSWORD, role_id=_role_id(db, MANAGER_ROLE)
    )


@pytest.fixture()
def manager_headers(manager_user) -> dict:
    return _headers_for(manager_user)


@pytest.fixture()
def role_ids(db) -> dict:
    """Seeded role name -> id."""
    return {name: _role_id(db, name) for name in (settings.admin_role_name, MANAGER_ROLE, USER_ROLE)}


@pytest.fixture()
def make_headers():
    """Bearer headers for any user object."""
    return _headers_for
