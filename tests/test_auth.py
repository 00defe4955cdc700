from datetime import datetime, timedelta, timezone

from tests.conftest import PASSWORD


def test_register_returns_token_and_public_user(client, register, db):
    user, headers = register("alice", "Alice", "Smith")

    assert user["username"] == "alice"
    assert user["email"] == "alice@example.com"
    assert user["role"] == "user"
    assert "password" not in user
    stored = db["user"].find_one({"username": "alice"})
    assert stored["password"] != PASSWORD
    assert db["session"].count_documents({}) == 1


def test_register_rejects_duplicates(client, register):
    register("alice")
    res = client.post("/api/auth/register", json={
        "username": "alice",
        "email": "other@example.com",
        "password": PASSWORD,
        "firstName": "A",
        "lastName": "B",
    })
    assert res.status_code == 400
    assert res.json()["message"] == "User with this email or username already exists"


def test_register_validation_errors(client, db):
    res = client.post("/api/auth/register", json={
        "username": "a!",
        "email": "nope",
        "password": "short",
        "firstName": "",
    })

    assert res.status_code == 400
    body = res.json()
    assert body["message"] == "Validation failed"
    fields = [e["field"] for e in body["errors"]]
    assert {"username", "password"} <= set(fields)
    assert {"email", "firstName", "lastName"} <= set(fields)
    assert db["user"].count_documents({}) == 0


def test_login(client, register):
    register("alice")
    res = client.post("/api/auth/login", json={"email": "ALICE@example.com", "password": PASSWORD})

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["user"]["username"] == "alice"
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.json()["data"]["user"]["username"] == "alice"


def test_login_wrong_password(client, register):
    register("alice")
    res = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Wrong1pass"})
    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Invalid credentials"}


def test_login_unknown_user(client):
    res = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
    assert res.status_code == 401


def test_me_rejects_missing_and_bad_tokens(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Basic abc"}).status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_expired_session_is_rejected_and_removed(client, register, db):
    _, headers = register("alice")
    db["session"].update_many({}, {"$set": {"expiresAt": datetime.now(timezone.utc) - timedelta(hours=1)}})

    res = client.get("/api/auth/me", headers=headers)

    assert res.status_code == 401
    assert res.json()["message"] == "Session expired"
    assert db["session"].count_documents({}) == 0


def test_deactivated_user_is_forbidden(client, register, db):
    _, headers = register("alice")
    db["user"].update_one({"username": "alice"}, {"$set": {"isActive": False}})
    assert client.get("/api/auth/me", headers=headers).status_code == 403


def test_logout_invalidates_token(client, register):
    _, headers = register("alice")

    assert client.post("/api/auth/logout", headers=headers).json()["success"] is True
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_unknown_route_uses_envelope(client):
    res = client.get("/api/nothing-here")
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Route not found"}


def test_health(client):
    body = client.get("/api/health").json()
    assert body["status"] == "OK"
    assert body["message"] == "Server is running"
