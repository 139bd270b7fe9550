import pytest
import os
import uuid
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from performance360.database import Base, get_db
from performance360.main import app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory creating users; ``manager`` wires the reports-to link."""
    from performance360.models.user import User, UserRole
    from performance360.services import auth as auth_service

    hashed = auth_service.get_password_hash(DEFAULT_PASSWORD)

    def _make_user(email, role=UserRole.EMPLOYEE, manager=None, first_name="Test", last_name=None, is_active=True):
        user = User(
            email=email,
            hashed_password=hashed,
            first_name=first_name,
            last_name=last_name or email.split("@")[0].title(),
            role=role,
            manager_id=manager.id if manager is not None else None,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture(scope="function")
def admin_user(make_user):
    from performance360.models.user import UserRole
    return make_user("admin@example.com", role=UserRole.ADMIN, first_name="System", last_name="Admin")


@pytest.fixture(scope="function")
def org(make_user):
    """
    A small reporting tree:

        head (MANAGER)
        ├── lead (MANAGER)
        │   └── dev (EMPLOYEE)
        └── qa (EMPLOYEE)

    plus ``outsider``, an employee with no manager.
    """
    from performance360.models.user import UserRole
    head = make_user("head@example.com", role=UserRole.MANAGER)
    lead = make_user("lead@example.com", role=UserRole.MANAGER, manager=head)
    dev = make_user("dev@example.com", manager=lead)
    qa = make_user("qa@example.com", manager=head)
    outsider = make_user("outsider@example.com")
    return {"head": head, "lead": lead, "dev": dev, "qa": qa, "outsider": outsider}


@pytest.fixture(scope="function")
def get_token(db_session):
    """Helper fixture to open a login session and mint an access token bound to it."""
    from datetime import datetime, timedelta, timezone
    from performance360.models.user import UserSession
    from performance360.services.auth import create_access_token

    def _get_token(user):
        session = UserSession(
            user_id=user.id,
            refresh_token=f"test-refresh-{uuid.uuid4().hex}",
            expires_at=datetime.now(timezone.utc) + timedelta(days=1),
            last_activity_at=datetime.now(timezone.utc),
        )
        db_session.add(session)
        db_session.commit()
        return create_access_token(data={
            "sub": user.email,
            "role": user.role.value,
            "user_id": user.id,
            "sid": session.id,
        })
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _auth_headers


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
