"""Auth tests.

Learn: Tests cover:
1. User registration + duplicate prevention
2. Login → JWT tokens
3. Token refresh (and refusing access tokens there)
4. Protected /me endpoint with a real Bearer token
"""

import pytest

from synergy.auth.jwt import ACCESS, REFRESH, TokenError, create_access_token, verify_token

REGISTER = {
    "email": "carol@example.com",
    "username": "carol",
    "full_name": "Carol Chen",
    "password": "secure_password_123",
}


async def _register_and_login(client) -> dict:
    r = await client.post("/api/v1/auth/register", json=REGISTER)
    assert r.status_code == 201
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": REGISTER["email"], "password": REGISTER["password"]},
    )
    assert r.status_code == 200
    return r.json()


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(unauthenticated_client):
    r = await unauthenticated_client.post("/api/v1/auth/register", json=REGISTER)
    assert r.status_code == 201
    user = r.json()
    assert user["email"] == "carol@example.com"
    assert user["username"] == "carol"
    assert "password_hash" not in user
    assert "id" in user


@pytest.mark.asyncio
async def test_register_duplicate(unauthenticated_client):
    """Email and username are both unique."""
    r1 = await unauthenticated_client.post("/api/v1/auth/register", json=REGISTER)
    assert r1.status_code == 201

    r2 = await unauthenticated_client.post(
        "/api/v1/auth/register", json={**REGISTER, "username": "carol2"}
    )
    assert r2.status_code == 409

    r3 = await unauthenticated_client.post(
        "/api/v1/auth/register", json={**REGISTER, "email": "other@example.com"}
    )
    assert r3.status_code == 409


@pytest.mark.asyncio
async def test_register_validation(unauthenticated_client):
    """Password must be at least 8 characters; email must look like one."""
    r = await unauthenticated_client.post(
        "/api/v1/auth/register", json={**REGISTER, "password": "short"}
    )
    assert r.status_code == 422

    r = await unauthenticated_client.post(
        "/api/v1/auth/register", json={**REGISTER, "email": "not-an-email"}
    )
    assert r.status_code == 422


# ═══════════════════════════════════════════════════════════
# Login + tokens
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_returns_tokens(unauthenticated_client):
    tokens = await _register_and_login(unauthenticated_client)
    assert tokens["token_type"] == "bearer"
    assert verify_token(tokens["access_token"])["type"] == ACCESS
    assert verify_token(tokens["refresh_token"], expected_type=REFRESH)["type"] == REFRESH


@pytest.mark.asyncio
async def test_login_wrong_password(unauthenticated_client, user):
    r = await unauthenticated_client.post(
        "/api/v1/auth/login",
        json={"email": "alice@example.com", "password": "wrong-horse"},
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_unknown_email(unauthenticated_client):
    r = await unauthenticated_client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@example.com", "password": "whatever123"},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_refresh(unauthenticated_client):
    tokens = await _register_and_login(unauthenticated_client)

    r = await unauthenticated_client.post(
        "/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert r.status_code == 200
    assert "access_token" in r.json()


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(unauthenticated_client):
    tokens = await _register_and_login(unauthenticated_client)

    r = await unauthenticated_client.post(
        "/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]}
    )
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Protected endpoints
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_with_bearer_token(unauthenticated_client):
    tokens = await _register_and_login(unauthenticated_client)

    r = await unauthenticated_client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {tokens['access_token']}"},
    )
    assert r.status_code == 200
    assert r.json()["email"] == "carol@example.com"


@pytest.mark.asyncio
async def test_me_without_token(unauthenticated_client):
    r = await unauthenticated_client.get("/api/v1/auth/me")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_bad_token_rejected(unauthenticated_client):
    r = await unauthenticated_client.get(
        "/api/v1/auth/me", headers={"Authorization": "Bearer garbage"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_bearer_token_on_project_routes(unauthenticated_client, user):
    headers = {"Authorization": f"Bearer {create_access_token(str(user.id))}"}

    r = await unauthenticated_client.post(
        "/api/v1/projects", json={"name": "Launch Website"}, headers=headers
    )
    assert r.status_code == 201
    assert r.json()["owner_id"] == str(user.id)


def test_expired_token():
    token = create_access_token("someone", expires_minutes=-1)
    with pytest.raises(TokenError, match="expired"):
        verify_token(token)
