import os

# must be set before the application modules read their settings
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session

from backend import app
from database import create_db_and_tables, create_db_engine, get_session


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(name="alice")
def alice_fixture(client):
    response = client.post("/auth/register", json={"name": "alice", "password": "wonderland"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture(name="make_habit")
def make_habit_fixture(client):
    def make_habit(user_id, title):
        response = client.post("/habits", json={"userId": user_id, "title": title})
        assert response.status_code == 201, response.text
        return response.json()

    return make_habit
