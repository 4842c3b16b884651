"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; give the test run its own values
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-the-workforce-suite")
os.environ.setdefault("APP_ENV", "local")
os.environ.setdefault("ATTENDANCE_TZ", "Asia/Kolkata")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine

from workforce.main import app
from workforce.db.base import Base
from workforce.core.deps import get_db
from workforce.core.security import hash_password
from workforce.models.company import Branch
from workforce.models.user import User, Role
from workforce.services import master_service

# Import all models to ensure they're registered with Base.metadata
import workforce.models  # noqa: F401


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    if type(dbapi_conn).__module__.startswith("sqlite3"):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "testpass123"


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def get_auth_token(client, username, password=PASSWORD):
    """Helper to get an access token through the tenant login"""
    response = client.post(
        "/api/v1/auth/login",
        json={"username": username, "password": password}
    )
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


def auth_headers(client, username, password=PASSWORD):
    return {"Authorization": f"Bearer {get_auth_token(client, username, password)}"}


@pytest.fixture
def master_user(db):
    """Platform master operator"""
    user = User(
        email="master@platform.test",
        full_name="Master Operator",
        role=Role.MASTER.value,
        password_hash=hash_password(PASSWORD),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_company(db):
    """Company with attendance, geofencing and inventory enabled; its admin is admin@acme.test"""
    return master_service.create_company(
        db,
        company_code="acme",
        name="Acme Corp",
        admin_username="admin@acme.test",
        admin_password=PASSWORD,
        employee_limit=5,
        branch_limit=3,
        default_modules=["attendance", "geofencing", "inventory"],
    )


@pytest.fixture
def company_admin(db, test_company):
    return db.query(User).filter(
        User.company_id == test_company.id,
        User.role == Role.COMPANY_ADMIN.value,
    ).first()


@pytest.fixture
def test_branch(db, test_company):
    branch = Branch(company_id=test_company.id, name="Bangalore HQ", is_active=True)
    db.add(branch)
    db.commit()
    db.refresh(branch)
    return branch


@pytest.fixture
def other_branch(db, test_company):
    branch = Branch(company_id=test_company.id, name="Mumbai", is_active=True)
    db.add(branch)
    db.commit()
    db.refresh(branch)
    return branch


def make_user(db, company, branch, email, role=Role.EMPLOYEE, employee_code=None, is_active=True):
    user = User(
        company_id=company.id,
        branch_id=branch.id if branch is not None else None,
        email=email,
        employee_code=employee_code,
        full_name=email.split("@")[0].title(),
        role=role.value,
        password_hash=hash_password(PASSWORD),
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_employee(db, test_company, test_branch):
    return make_user(db, test_company, test_branch, "emp@acme.test", employee_code="EMP001")


@pytest.fixture
def test_manager(db, test_company, test_branch):
    return make_user(db, test_company, test_branch, "manager@acme.test", role=Role.BRANCH_MANAGER)
