"""Auth API tests — signup, login, the gate over HTTP, password reset.

Learn: Tests cover:
1. Signup + duplicate prevention + validation (400, not FastAPI's 422)
2. Login → bearer token; identical failure for unknown email / bad password
3. The gate's error kinds as seen by a client (401 + WWW-Authenticate)
4. Token lifetime: works within the TTL, 401 token_expired after it
5. Forgot/reset: no existence oracle, single use, latest token wins
"""

import pytest

from conftest import DEFAULT_PASSWORD, TEST_SECRET, FakeClock
from shareme.auth.jwt import TokenEngine

NEW_PASSWORD = "a-much-better-password"


# ═══════════════════════════════════════════════════════════
# Signup
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_signup(client):
    r = await client.post(
        "/api/auth/signup",
        json={
            "email": "Dana@Example.com",
            "password": DEFAULT_PASSWORD,
            "firstName": "Dana",
            "lastName": "Scully",
        },
    )
    assert r.status_code == 201
    user = r.json()
    assert user["email"] == "dana@example.com"
    assert user["firstName"] == "Dana"
    assert user["lastName"] == "Scully"
    assert user["role"] == "USER"
    assert "id" in user
    assert "passwordHash" not in user
    assert "password" not in user


@pytest.mark.asyncio
async def test_signup_duplicate_email(client, make_user):
    await make_user("dup@example.com")
    r = await client.post(
        "/api/auth/signup",
        json={
            "email": "DUP@example.com",
            "password": DEFAULT_PASSWORD,
            "firstName": "Second",
            "lastName": "User",
        },
    )
    assert r.status_code == 409
    assert r.json()["error"] == "conflict"


@pytest.mark.asyncio
async def test_signup_short_password(client):
    r = await client.post(
        "/api/auth/signup",
        json={"email": "short@example.com", "password": "abc", "firstName": "S", "lastName": "P"},
    )
    assert r.status_code == 400
    body = r.json()
    assert body["status"] == 400
    assert body["error"] == "validation_error"
    assert "password" in body["message"]


@pytest.mark.asyncio
async def test_signup_bad_email(client):
    r = await client.post(
        "/api/auth/signup",
        json={"email": "not-an-email", "password": DEFAULT_PASSWORD, "firstName": "N", "lastName": "E"},
    )
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_returns_bearer_token(client, make_user, clock, app):
    user = await make_user("erin@example.com", "Erin", "Hale")
    r = await client.post(
        "/api/auth/login", json={"email": "erin@example.com", "password": DEFAULT_PASSWORD}
    )
    assert r.status_code == 200
    body = r.json()
    assert body["tokenType"] == "Bearer"
    assert body["user"]["id"] == user["id"]
    assert body["user"]["firstName"] == "Erin"

    identity = app.state.token_engine.verify(body["token"])
    assert identity.email == "erin@example.com"
    assert identity.user_id == user["id"]


@pytest.mark.asyncio
async def test_login_failures_look_the_same(client, make_user):
    await make_user("frank@example.com")

    wrong_pw = await client.post(
        "/api/auth/login", json={"email": "frank@example.com", "password": "wrong-password"}
    )
    unknown = await client.post(
        "/api/auth/login", json={"email": "ghost@example.com", "password": "wrong-password"}
    )
    assert wrong_pw.status_code == unknown.status_code == 401
    assert wrong_pw.json() == unknown.json()
    assert wrong_pw.json()["error"] == "invalid_credentials"


# ═══════════════════════════════════════════════════════════
# The gate over HTTP
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_with_token(client, make_user):
    user = await make_user("gina@example.com", "Gina", "Ortiz")
    r = await client.get("/api/auth/me", headers=user["headers"])
    assert r.status_code == 200
    assert r.json()["email"] == "gina@example.com"
    assert r.json()["id"] == user["id"]


@pytest.mark.asyncio
async def test_missing_token(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"
    assert r.json() == {
        "status": 401,
        "message": "Authentication required",
        "error": "missing_token",
    }


@pytest.mark.asyncio
async def test_wrong_prefix(client, make_user):
    user = await make_user("hank@example.com")
    r = await client.get("/api/auth/me", headers={"Authorization": f"Token {user['token']}"})
    assert r.status_code == 401
    assert r.json()["error"] == "invalid_token_format"


@pytest.mark.asyncio
async def test_forged_token(client, make_user, clock):
    user = await make_user("ivy@example.com")
    forger = TokenEngine("someone-elses-secret-0123456789abcdef", clock=clock)
    token = forger.issue("ivy@example.com", user["id"])

    r = await client.get("/api/projects", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["error"] == "invalid_signature"


@pytest.mark.asyncio
async def test_malformed_token(client):
    r = await client.get("/api/projects", headers={"Authorization": "Bearer x.y.z"})
    assert r.status_code == 401
    assert r.json()["error"] == "malformed_token"


@pytest.mark.asyncio
async def test_token_valid_within_ttl_rejected_after(client, make_user, clock):
    user = await make_user("jack@example.com")

    clock.advance(minutes=59)
    r = await client.get("/api/projects", headers=user["headers"])
    assert r.status_code == 200

    clock.advance(minutes=1)
    r = await client.get("/api/projects", headers=user["headers"])
    assert r.status_code == 401
    assert r.json()["error"] == "token_expired"


@pytest.mark.asyncio
async def test_token_from_earlier_process_still_valid(client, make_user, clock):
    """Same secret, different engine instance: tokens survive a restart."""
    user = await make_user("kim@example.com")
    restarted = TokenEngine(TEST_SECRET, clock=FakeClock(clock.now))
    token = restarted.issue("kim@example.com", user["id"])

    r = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_error_bodies_never_leak_internals(client):
    r = await client.get("/api/auth/me", headers={"Authorization": "Bearer a.b.c"})
    body = r.json()
    assert set(body) == {"status", "message", "error"}
    assert "Traceback" not in body["message"]
    assert "DecodeError" not in body["message"]


# ═══════════════════════════════════════════════════════════
# Forgot / reset
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_forgot_same_response_for_unknown_email(client, make_user, notifier):
    await make_user("lena@example.com")

    known = await client.post("/api/auth/forgot", json={"email": "lena@example.com"})
    unknown = await client.post("/api/auth/forgot", json={"email": "nobody@example.com"})

    assert known.status_code == unknown.status_code == 204
    assert known.content == unknown.content == b""
    # Only the real account produced a ticket
    assert [t.email for t in notifier.tickets] == ["lena@example.com"]


@pytest.mark.asyncio
async def test_full_reset_flow(client, make_user, notifier):
    await make_user("mona@example.com")

    r = await client.post("/api/auth/forgot", json={"email": "mona@example.com"})
    assert r.status_code == 204
    token = notifier.last.token

    r = await client.post("/api/auth/reset", json={"token": token, "newPassword": NEW_PASSWORD})
    assert r.status_code == 204

    r = await client.post(
        "/api/auth/login", json={"email": "mona@example.com", "password": DEFAULT_PASSWORD}
    )
    assert r.status_code == 401
    r = await client.post(
        "/api/auth/login", json={"email": "mona@example.com", "password": NEW_PASSWORD}
    )
    assert r.status_code == 200

    # Single use
    r = await client.post("/api/auth/reset", json={"token": token, "newPassword": "third-password"})
    assert r.status_code == 401
    assert r.json()["error"] == "reset_token_invalid"


@pytest.mark.asyncio
async def test_second_forgot_invalidates_first_token(client, make_user, notifier):
    await make_user("nina@example.com")

    await client.post("/api/auth/forgot", json={"email": "nina@example.com"})
    first = notifier.last.token
    await client.post("/api/auth/forgot", json={"email": "nina@example.com"})
    second = notifier.last.token
    assert first != second

    r = await client.post("/api/auth/reset", json={"token": first, "newPassword": NEW_PASSWORD})
    assert r.status_code == 401
    assert r.json()["error"] == "reset_token_invalid"

    r = await client.post("/api/auth/reset", json={"token": second, "newPassword": NEW_PASSWORD})
    assert r.status_code == 204


@pytest.mark.asyncio
async def test_expired_reset_token(client, make_user, notifier, clock):
    await make_user("omar@example.com")
    await client.post("/api/auth/forgot", json={"email": "omar@example.com"})
    token = notifier.last.token

    clock.advance(minutes=31)
    r = await client.post("/api/auth/reset", json={"token": token, "newPassword": NEW_PASSWORD})
    assert r.status_code == 401
    assert r.json()["error"] == "reset_token_expired"


@pytest.mark.asyncio
async def test_reset_with_weak_password(client, make_user, notifier):
    await make_user("pia@example.com")
    await client.post("/api/auth/forgot", json={"email": "pia@example.com"})

    r = await client.post(
        "/api/auth/reset", json={"token": notifier.last.token, "newPassword": "short"}
    )
    assert r.status_code == 400
    assert r.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_reset_does_not_need_a_bearer_token(client, make_user, notifier):
    """Forgot/reset are open: they are how a locked-out user gets back in."""
    await make_user("quinn@example.com")
    r = await client.post("/api/auth/forgot", json={"email": "quinn@example.com"})
    assert r.status_code == 204
    r = await client.post(
        "/api/auth/reset", json={"token": notifier.last.token, "newPassword": NEW_PASSWORD}
    )
    assert r.status_code == 204


@pytest.mark.asyncio
async def test_failing_notifier_does_not_change_response(client, make_user, app):
    class Broken:
        async def send(self, ticket):
            raise RuntimeError("smtp relay down")

    app.state.reset_notifier = Broken()
    await make_user("rita@example.com")

    r = await client.post("/api/auth/forgot", json={"email": "rita@example.com"})
    assert r.status_code == 204
