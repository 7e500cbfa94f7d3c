import pytest
import os
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from app.database import Base, get_db, get_session_factory
from app.main import app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function", autouse=True)
def setup_database():
    """
    Fresh tables for every test. Services commit and open detached sessions of
    their own, so an outer rollback cannot isolate tests.
    """
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory():
    return TestingSessionLocal


@pytest.fixture(scope="function")
def db_session():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def employer(db_session):
    from app.models.user import User, UserRole
    user = User(email="employer@example.com", full_name="Jeanne Martin", role=UserRole.EMPLOYER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope="function")
def employee(db_session):
    from app.models.user import User, UserRole
    user = User(email="caregiver@example.com", full_name="Alex Durand", role=UserRole.EMPLOYEE)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope="function")
def contract(db_session, employer, employee):
    """Full-time contract running since 2020, so any past leave year is fully accrued."""
    from app.models.contract import Contract
    c = Contract(
        employer_id=employer.id,
        employee_id=employee.id,
        start_date=date(2020, 1, 6),
        weekly_hours=35.0,
        hourly_rate=14.5
    )
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope="function")
def auth_headers():
    """Helper fixture building the caller identity header forwarded by the platform."""
    def _auth_headers(user):
        return {"X-User-Id": str(user.id)}
    return _auth_headers


@pytest.fixture(scope="function")
def client():
    """Get a TestClient wired to the test database via dependency override."""
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
