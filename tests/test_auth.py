from tests.conftest import token_for

API = "/api/v1"


def test_register_returns_token_and_user(client, db):
    response = client.post(f"{API}/auth/register", json={
        "email": "New.Rider@Example.com",
        "password": "secret123",
        "full_name": "  New Rider  "
    })
    assert response.status_code == 201
    body = response.json()
    assert body["access_token"]
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "new.rider@example.com"
    assert body["user"]["full_name"] == "New Rider"
    assert body["user"]["role"] == "USER"

    me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "new.rider@example.com"


def test_register_duplicate_email(client, user):
    response = client.post(f"{API}/auth/register", json={
        "email": "RIDER@example.com", "password": "secret123", "full_name": "Again"
    })
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Email is already registered"
    assert body["path"] == f"{API}/auth/register"
    assert "timestamp" in body


def test_register_rejects_short_password(client, db):
    response = client.post(f"{API}/auth/register", json={
        "email": "short@example.com", "password": "123", "full_name": "Short"
    })
    assert response.status_code == 422


def test_login(client, user):
    response = client.post(f"{API}/auth/login", json={"email": "rider@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["user"]["id"] == user.id


def test_login_wrong_password(client, user):
    response = client.post(f"{API}/auth/login", json={"email": "rider@example.com", "password": "wrong-pass"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_login_deactivated_account(client, make_user):
    make_user(email="gone@example.com", active=False)
    response = client.post(f"{API}/auth/login", json={"email": "gone@example.com", "password": "secret123"})
    assert response.status_code == 403
    assert response.json()["message"] == "Account has been deactivated"


def test_oauth2_token_form(client, user):
    response = client.post(f"{API}/auth/token", data={"username": "rider@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"


def test_refresh_token(client, user, user_headers):
    token = user_headers["Authorization"].split(" ", 1)[1]
    response = client.post(f"{API}/auth/refresh", json={"token": token})
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "rider@example.com"

    assert client.post(f"{API}/auth/refresh", json={"token": "not-a-jwt"}).status_code == 401


def test_logout(client, user_headers):
    response = client.post(f"{API}/auth/logout", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"


def test_check_email(client, user):
    registered = client.get(f"{API}/auth/check-email", params={"email": "rider@example.com"})
    assert registered.json()["registered"] is True
    free = client.get(f"{API}/auth/check-email", params={"email": "nobody@example.com"})
    assert free.json()["registered"] is False


def test_me_requires_token(client, db):
    response = client.get(f"{API}/auth/me")
    assert response.status_code == 401

    response = client.get(f"{API}/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_deactivated_user_token_is_refused(client, make_user):
    gone = make_user(email="gone@example.com", active=False)
    response = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token_for(gone)}"})
    assert response.status_code == 403
