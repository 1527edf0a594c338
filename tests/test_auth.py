from __future__ import annotations


def _register(client, username="conductor", password="whistle-stop-42", **extra):
    return client.post("/auth/register", json={"username": username, "password": password, **extra})


def test_register_login_me_logout(client):
    r = _register(client, first_name="Casey", email="casey@example.org")
    assert r.status_code == 201
    user = r.json()["data"]
    assert user["permission"] == "member"
    assert user["club_ids"] == []
    assert "password_hash" not in user

    r = client.post("/auth/login", json={"username": "conductor", "password": "whistle-stop-42"})
    assert r.status_code == 200
    token = r.json()["data"]["token"]
    assert len(token) == 64
    headers = {"Authorization": f"Bearer {token}"}

    me = client.get("/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["data"]["username"] == "conductor"

    assert client.post("/auth/logout", headers=headers).status_code == 200
    assert client.get("/auth/me", headers=headers).status_code == 401


def test_duplicate_username_is_409(client):
    assert _register(client).status_code == 201
    r = _register(client)
    assert r.status_code == 409
    assert r.json() == {"error": "Username already exists"}


def test_short_password_is_400(client):
    r = _register(client, password="short")
    assert r.status_code == 400
    assert "password" in r.json()["error"]


def test_bad_credentials_is_401(client):
    _register(client)
    r = client.post("/auth/login", json={"username": "conductor", "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid username or password"}


def test_missing_or_unknown_bearer_is_401(client):
    assert client.get("/auth/me").status_code == 401
    r = client.get("/auth/me", headers={"Authorization": "Bearer deadbeef"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid token"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
