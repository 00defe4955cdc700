import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")

from bson import ObjectId
import mongomock
import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app

PASSWORD = "Secr3tPass"


@pytest.fixture
def db():
    return mongomock.MongoClient().blog_test


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register a user and return (user, auth headers)."""

    def _register(username, first_name="Test", last_name="User"):
        res = client.post("/api/auth/register", json={
            "username": username,
            "email": f"{username}@example.com",
            "password": PASSWORD,
            "firstName": first_name,
            "lastName": last_name,
        })
        assert res.status_code == 201, res.text
        data = res.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def make_admin(db):
    def _make_admin(user):
        db["user"].update_one({"_id": ObjectId(user["id"])}, {"$set": {"role": "admin"}})

    return _make_admin


@pytest.fixture
def create_post(client):
    def _create_post(headers, **fields):
        body = {"title": "Hello", "content": "Some content", "category": "General"}
        body.update(fields)
        res = client.post("/api/posts", json=body, headers=headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]["post"]

    return _create_post
