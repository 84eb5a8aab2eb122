import pytest

import credentials
from errors import Conflict, Unauthorized, ValidationError
from models import User


def test_register_returns_user(client):
    response = client.post("/auth/register", json={"name": "alice", "password": "wonderland"})
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "alice"
    assert isinstance(data["id"], int)


def test_register_twice_conflicts(client, alice):
    response = client.post("/auth/register", json={"name": "alice", "password": "other"})
    assert response.status_code == 409
    assert response.json() == {"error": "Username already exists"}


@pytest.mark.parametrize("body", [{"name": "bob"}, {"password": "x"}, {"name": "", "password": "x"}, {"name": "bob", "password": ""}])
def test_register_missing_fields(client, body):
    response = client.post("/auth/register", json=body)
    assert response.status_code == 400
    assert "error" in response.json()


def test_password_is_hashed(session):
    user = credentials.register(session, "carol", "s3cret")
    stored = session.get(User, user.id)
    assert stored.hashed_password != "s3cret"
    assert stored.hashed_password.startswith("$2")


def test_login(client, alice):
    response = client.post("/auth/login", json={"name": "alice", "password": "wonderland"})
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == alice["id"]
    assert data["name"] == "alice"
    assert data["token_type"] == "bearer"
    assert data["access_token"]


def test_login_failures_are_uniform(client, alice):
    wrong_password = client.post("/auth/login", json={"name": "alice", "password": "nope"})
    unknown_name = client.post("/auth/login", json={"name": "mallory", "password": "nope"})
    assert wrong_password.status_code == unknown_name.status_code == 401
    assert wrong_password.json() == unknown_name.json() == {"error": "Invalid credentials"}


def test_login_missing_fields(client):
    response = client.post("/auth/login", json={"name": "alice"})
    assert response.status_code == 400


def test_verify(session):
    credentials.register(session, "dave", "pw")
    assert credentials.verify(session, "dave", "pw").name == "dave"
    with pytest.raises(Unauthorized):
        credentials.verify(session, "dave", "wrong")
    with pytest.raises(Unauthorized):
        credentials.verify(session, "erin", "pw")


def test_register_errors(session):
    credentials.register(session, "frank", "pw")
    with pytest.raises(Conflict):
        credentials.register(session, "frank", "pw2")
    with pytest.raises(ValidationError):
        credentials.register(session, "   ", "pw")
    with pytest.raises(ValidationError):
        credentials.register(session, "x" * 51, "pw")


def test_blank_password_rejected_on_login(client, alice):
    response = client.post("/auth/login", json={"name": "alice", "password": "   "})
    assert response.status_code == 400
    assert response.json() == {"error": "Name and password required"}
