"""
Shared pytest configuration.

Environment is pinned before the package is imported so Settings never
reaches for Redis or a file-backed database during tests.
"""

import os

os.environ.setdefault("SLOT_LOCK_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("DISPLAY_TIMEZONE", "America/Bogota")
os.environ.setdefault("MIN_LEAD_TIME_MINUTES", "60")

from datetime import datetime  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402
from scheduling_factories import at  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tutor_scheduling.database import Base, get_db  # noqa: E402
from tutor_scheduling.main import app  # noqa: E402

# Import models so Base.metadata is populated for create_all.
import tutor_scheduling.models  # noqa: E402,F401
from tutor_scheduling.routes.v1.scheduling import get_now  # noqa: E402


@pytest.fixture(scope="function")
def engine():
    test_engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Session:
    """Fresh session on a fresh in-memory database for each test."""
    TestSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
    session = TestSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def now() -> datetime:
    """08:00 UTC on the fixture day; windows in the tests start at 09:00."""
    return at(8)


@pytest.fixture
def client(db: Session, now: datetime):
    """Create a test client with the test database and a frozen clock."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: now

    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()
