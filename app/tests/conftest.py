import os
from dataclasses import dataclass
from typing import Callable, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Ensure tests always use HTTP-friendly cookies regardless of local config.yaml.
os.environ["TERNA_SECURE_COOKIES"] = "false"

from app.database import Base, get_db
from app.main import app
from app.data.user_manager import UserManager

# Define a test database URL
TEST_DATABASE_URL = "sqlite:///:memory:"  # Use in-memory SQLite for tests
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session")
def create_test_tables():
    """Create all database tables once per session before tests run."""
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function")
def db_session(create_test_tables):
    """
    Provides a transactional database session for a test.
    Rolls back changes after the test.
    Overrides the main app's get_db dependency.
    """
    connection = engine.connect()
    transaction = connection.begin()
    db = TestingSessionLocal(bind=connection)

    original_get_db = app.dependency_overrides.get(get_db)
    app.dependency_overrides[get_db] = lambda: db

    try:
        yield db
    finally:
        db.close()
        transaction.rollback()
        connection.close()
        if original_get_db:
            app.dependency_overrides[get_db] = original_get_db
        else:
            del app.dependency_overrides[get_db]


@pytest.fixture(scope="function")
def client(db_session: Session):
    """Provides a TestClient instance for making requests to the FastAPI app."""
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="function")
def user_manager(db_session: Session) -> UserManager:
    manager = UserManager()
    manager.set_db(db_session)
    return manager


@dataclass
class Participant:
    client: TestClient
    user_id: str
    name: str


@pytest.fixture(scope="function")
def login_client(client: TestClient) -> Callable[[str], Participant]:
    """
    Factory returning a TestClient signed in under the given display name.
    Each call gets its own cookie jar so several participants can act in one test.
    """
    extra_clients: List[TestClient] = []

    def _login(name: str) -> Participant:
        user_client = TestClient(app)
        extra_clients.append(user_client)
        response = user_client.post("/api/auth/login", json={"name": name})
        assert response.status_code == 200, response.text
        return Participant(
            client=user_client, user_id=response.json()["user_id"], name=name
        )

    yield _login

    for extra in extra_clients:
        extra.close()
