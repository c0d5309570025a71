import pytest
from httpx import AsyncClient

from conftest import PASSWORD, bearer, register

pytestmark = pytest.mark.asyncio


async def test_register_returns_user_and_tokens(client: AsyncClient):
    data = await register(client, "new@example.com", name="New")
    assert data["user"]["email"] == "new@example.com"
    assert data["user"]["tier"] == "FREE"
    assert data["user"]["role"] == "USER"
    assert data["tokens"]["token_type"] == "bearer"
    assert data["tokens"]["access_token"]
    assert data["tokens"]["refresh_token"]


async def test_register_duplicate_email_is_rejected(client: AsyncClient):
    await register(client, "dup@example.com")
    response = await client.post("/api/v1/auth/register", json={"email": "DUP@example.com", "password": PASSWORD})
    assert response.status_code == 400
    body = response.json()
    assert body["error"]["type"] == "http_error"
    assert body["error"]["message"] == "User with this email already exists"
    assert body["path"] == "/api/v1/auth/register"


async def test_register_validation_error_envelope(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={"email": "not-an-email", "password": "short"})
    assert response.status_code == 422
    body = response.json()
    assert body["error"]["type"] == "validation_error"
    assert isinstance(body["error"]["details"], list)
    assert response.headers["X-Correlation-ID"]


async def test_login_and_me(client: AsyncClient):
    await register(client, "login@example.com")
    response = await client.post("/api/v1/auth/login", json={"email": "login@example.com", "password": PASSWORD})
    assert response.status_code == 200
    headers = bearer(response.json())

    me = await client.get("/api/v1/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["email"] == "login@example.com"
    assert me.json()["email_verified"] is False


async def test_login_wrong_password(client: AsyncClient):
    await register(client, "wrong@example.com")
    response = await client.post("/api/v1/auth/login", json={"email": "wrong@example.com", "password": "nope-nope-nope"})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid email or password"


async def test_me_requires_token(client: AsyncClient):
    assert (await client.get("/api/v1/auth/me")).status_code == 401
    bad = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"})
    assert bad.status_code == 401


async def test_refresh_issues_new_pair(client: AsyncClient):
    data = await register(client, "refresh@example.com")
    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": data["tokens"]["refresh_token"]})
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "refresh@example.com"


async def test_refresh_rejects_access_token(client: AsyncClient):
    data = await register(client, "refresh2@example.com")
    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": data["tokens"]["access_token"]})
    assert response.status_code == 401


async def test_logout(client: AsyncClient, user_headers):
    response = await client.post("/api/v1/auth/logout", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out"


async def test_forgot_password_same_answer_for_unknown_email(client: AsyncClient):
    await register(client, "known@example.com")
    known = await client.post("/api/v1/auth/forgot-password", json={"email": "known@example.com"})
    unknown = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


async def test_password_reset_flow(client: AsyncClient, monkeypatch):
    from vivaform_api.services.email import EmailService

    sent = {}

    async def fake_send(self, to, token):
        sent[to] = token
        return True

    monkeypatch.setattr(EmailService, "send_password_reset_email", fake_send)
    await register(client, "reset@example.com")
    await client.post("/api/v1/auth/forgot-password", json={"email": "reset@example.com"})
    token = sent["reset@example.com"]

    bad = await client.post(
        "/api/v1/auth/reset-password", json={"email": "reset@example.com", "token": "wrong", "password": "NewPass123!"}
    )
    assert bad.status_code == 400

    ok = await client.post(
        "/api/v1/auth/reset-password", json={"email": "reset@example.com", "token": token, "password": "NewPass123!"}
    )
    assert ok.status_code == 200

    login = await client.post("/api/v1/auth/login", json={"email": "reset@example.com", "password": "NewPass123!"})
    assert login.status_code == 200

    reused = await client.post(
        "/api/v1/auth/reset-password", json={"email": "reset@example.com", "token": token, "password": "Other123!!"}
    )
    assert reused.status_code == 400


async def test_verify_email(client: AsyncClient, monkeypatch):
    from vivaform_api.services.email import EmailService

    sent = {}

    async def fake_send(self, to, token):
        sent[to] = token
        return True

    monkeypatch.setattr(EmailService, "send_verification_email", fake_send)
    data = await register(client, "verify@example.com")

    assert (await client.get("/api/v1/auth/verify-email", params={"token": "nope"})).status_code == 400
    response = await client.get("/api/v1/auth/verify-email", params={"token": sent["verify@example.com"]})
    assert response.status_code == 200

    me = await client.get("/api/v1/auth/me", headers=bearer(data))
    assert me.json()["email_verified"] is True


async def test_temporary_password_forces_change(client: AsyncClient, monkeypatch):
    from vivaform_api.services.email import EmailService

    sent = {}

    async def fake_send(self, to, password):
        sent[to] = password
        return True

    monkeypatch.setattr(EmailService, "send_temporary_password_email", fake_send)
    await register(client, "temp@example.com")
    await client.post("/api/v1/auth/request-temp-password", json={"email": "temp@example.com"})
    temporary = sent["temp@example.com"]

    login = await client.post("/api/v1/auth/login", json={"email": "temp@example.com", "password": temporary})
    assert login.status_code == 200
    headers = bearer(login.json())
    assert (await client.get("/api/v1/auth/me", headers=headers)).json()["must_change_password"] is True

    wrong = await client.post(
        "/api/v1/auth/force-change-password",
        json={"current_password": "incorrect", "new_password": "Brand-New-1"},
        headers=headers,
    )
    assert wrong.status_code == 400

    changed = await client.post(
        "/api/v1/auth/force-change-password",
        json={"current_password": temporary, "new_password": "Brand-New-1"},
        headers=headers,
    )
    assert changed.status_code == 200
    assert (await client.get("/api/v1/auth/me", headers=headers)).json()["must_change_password"] is False
