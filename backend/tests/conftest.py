import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.dialects.sqlite import base as sqlite_base
from sqlalchemy.orm import sessionmaker

import app.models  # noqa: F401 (registers models with Base.metadata)
from app.core.database import Base, get_db
from app.main import app as fastapi_app
from app.models import User
from app.services.auth import create_access_token, hash_password

# ---------------------------------------------------------------------------
# SQLite compatibility for PostgreSQL-specific types (JSONB, UUID)
# ---------------------------------------------------------------------------
sqlite_base.SQLiteTypeCompiler.visit_JSONB = lambda self, type_, **kw: self.visit_JSON(type_, **kw)

# In-memory SQLite for tests, no PostgreSQL needed
TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def background_sessions(monkeypatch):
    """Background integration handlers open their own sessions on the test engine."""
    monkeypatch.setattr("app.services.integrations.SessionLocal", TestSessionLocal)


@pytest.fixture
def db():
    """Provide a test database session."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_user(db, name="Asha Owner", email="owner@example.com", password="strongpassword123", **extra):
    user = User(name=name, email=email, password_hash=hash_password(password), **extra)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_header(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def other_user(db):
    return make_user(db, name="Bina Reviewer", email="reviewer@example.com")


@pytest.fixture
def auth_headers(user):
    return auth_header(user)


@pytest.fixture
def other_headers(other_user):
    return auth_header(other_user)


@pytest.fixture
def client(db):
    """TestClient with overridden DB dependency."""

    def _override_get_db():
        try:
            yield db
        finally:
            pass

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()
