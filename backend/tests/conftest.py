"""
Pytest configuration and fixtures for the Global Unlock backend tests.

Provides test database isolation and common test utilities.
"""
import sys
import os
import pathlib
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Must be set before globalunlock.core.config is imported
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SEED_ON_STARTUP", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")

# Use in-memory SQLite for tests to ensure complete isolation
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")

# Create test engine
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in TEST_DATABASE_URL else {},
    poolclass=StaticPool if "sqlite" in TEST_DATABASE_URL else None,
    echo=False  # Set to True for SQL debugging
)

if "sqlite" in TEST_DATABASE_URL:
    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN itself
    @event.listens_for(test_engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")

# Service code commits; each commit only releases a savepoint inside the per-test transaction
TestingSessionLocal = sessionmaker(
    autoflush=False,
    bind=test_engine,
    join_transaction_mode="create_savepoint",
)

from tests.helpers.unlock_helpers import ADMIN_EMAIL, SEEDED_AT, bearer, make_token  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """
    Create and tear down test database schema once per test session.
    """
    from globalunlock.db import Base
    # Import all models to ensure they're registered with Base
    from globalunlock import models  # noqa: F401

    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def db():
    """
    Provide a clean database session for each test.

    Everything (including commits made by the code under test) is rolled
    back after the test.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


def override_get_db(db_session):
    """
    Helper function to create a dependency override for get_db.
    """
    def _override():
        """Override get_db to use the provided test database session."""
        yield db_session
    return _override


@pytest.fixture
def app():
    from globalunlock.main import app as fastapi_app
    return fastapi_app


@pytest.fixture(scope="function")
def client(app, db):
    """
    Provide a FastAPI TestClient with test database dependency override.
    """
    from fastapi.testclient import TestClient
    from globalunlock.db import get_db

    app.dependency_overrides[get_db] = override_get_db(db)

    try:
        # Set raise_server_exceptions=False so unhandled errors are converted to responses
        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def seeded(db):
    """
    Locker at 40% plus a handful of countries:
    AU=4 (band 2), US=0, FR=2 (band 1), JP=6 (band 3)
    """
    from globalunlock.models import CountryState, LockerState

    db.add(LockerState(id=1, energy_percentage=40, is_unlocked=False, last_updated=SEEDED_AT))
    for code, count, band in (("AU", 4, 2), ("US", 0, 0), ("FR", 2, 1), ("JP", 6, 3)):
        db.add(CountryState(country_code=code, activation_count=count, glow_band=band, last_updated=SEEDED_AT))
    db.commit()
    return db


@pytest.fixture
def admin_headers():
    return bearer(make_token())


@pytest.fixture
def viewer_headers():
    return bearer(make_token(email="viewer@example.com", role="viewer"))


@pytest.fixture
def admin_caller():
    from globalunlock.dependencies.auth import CallerIdentity
    return CallerIdentity(subject=ADMIN_EMAIL, email=ADMIN_EMAIL, role="admin")


@pytest.fixture
def viewer_caller():
    from globalunlock.dependencies.auth import CallerIdentity
    return CallerIdentity(subject="viewer@example.com", email="viewer@example.com", role="viewer")
