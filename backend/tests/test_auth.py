from conftest import PASSWORD, auth_headers
from devspace.models.user import User, UserStatus


def register(client, username="rocketeer", email="rocketeer@example.com", password="launch1"):
    return client.post("/api/auth/register", json={
        "username": username,
        "email": email,
        "password": password,
        "first_name": "Ada",
    })


def test_register_returns_token_and_profile(client, db):
    response = register(client)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["username"] == "rocketeer"
    assert data["user"]["email"] == "rocketeer@example.com"
    assert data["user"]["role"] == "user"
    assert "password_hash" not in data["user"]

    user = db.query(User).filter(User.username == "rocketeer").one()
    assert user.login_count == 1


def test_register_duplicate_email(client):
    register(client)
    response = register(client, username="someone_else")
    assert response.status_code == 400
    assert response.json()["error"] == "User Exists"


def test_register_rejects_bad_username(client):
    response = register(client, username="bad name!")
    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"


def test_login_success_increments_login_count(client, db, user):
    response = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["data"]["user"]["id"] == user.id

    db.refresh(user)
    assert user.login_count == 1
    assert user.last_login is not None


def test_login_wrong_password(client, user):
    response = client.post("/api/auth/login", json={"email": user.email, "password": "nope123"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid Credentials"


def test_login_inactive_account(client, make_user):
    suspended = make_user("drifter", status=UserStatus.SUSPENDED)
    response = client.post("/api/auth/login", json={"email": suspended.email, "password": PASSWORD})
    assert response.status_code == 403


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["error"] == "Access Denied"


def test_me_rejects_invalid_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid Token"


def test_me_rejects_suspended_user(client, make_user):
    suspended = make_user("drifter", status=UserStatus.SUSPENDED)
    response = client.get("/api/auth/me", headers=auth_headers(suspended))
    assert response.status_code == 403
    assert response.json()["error"] == "Account Inactive"


def test_update_me_merges_privacy(client, db, user):
    response = client.put(
        "/api/auth/me",
        json={"bio": "Charting new worlds", "privacy": {"show_email": True}},
        headers=auth_headers(user),
    )
    assert response.status_code == 200
    profile = response.json()["data"]["user"]
    assert profile["profile"]["bio"] == "Charting new worlds"
    assert profile["preferences"]["privacy"]["show_email"] is True

    db.refresh(user)
    assert user.privacy("show_email") is True
