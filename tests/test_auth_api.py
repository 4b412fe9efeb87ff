"""Auth API tests.

Learn: Tests cover:
1. Registration (email and phone) + duplicate prevention
2. Password login, admin login
3. One-time codes: request, verify, attempt limit
4. Token refresh and the /me endpoint
"""

import uuid

import pytest
from sqlalchemy import func, select

from crafthub.db.models import Artisan, Customer, OtpPurpose, User, UserRole

TEST_PASSWORD = "secure_password_123"  # same as the make_user fixture


def _email(prefix: str = "test") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


async def _register(client, identifier: str, role: str = "CUSTOMER", **extra):
    body = {
        "identifier": identifier,
        "name": "Test User",
        "password": TEST_PASSWORD,
        "role": role,
    }
    body.update(extra)
    return await client.post("/api/v1/auth/register", json=body)


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_with_email(client, otp_sender):
    """Register a customer; a signup code goes to the email address."""
    email = _email()
    r = await _register(client, email, date_of_birth="1990-04-12")
    assert r.status_code == 201
    data = r.json()
    assert data["identifier"] == email
    assert data["expires_in"] == 300
    user = data["user"]
    assert user["email"] == email
    assert user["role"] == "CUSTOMER"
    assert user["auth_provider"] == "EMAIL"
    assert user["is_email_verified"] is False
    assert user["date_of_birth"] == "1990-04-12"
    assert user["customer"] is not None
    assert "password_hash" not in user

    assert otp_sender.sent[-1][0] == email
    assert otp_sender.sent[-1][2] == OtpPurpose.SIGNUP


@pytest.mark.asyncio
async def test_register_artisan_with_phone(client, db_session):
    r = await _register(client, "+919876543210", role="ARTISAN")
    assert r.status_code == 201
    user = r.json()["user"]
    assert user["phone"] == "+919876543210"
    assert user["email"] is None
    assert user["auth_provider"] == "PHONE"
    assert user["artisan"]["skills"] == []
    assert user["customer"] is None

    count = await db_session.execute(select(func.count()).select_from(Artisan))
    assert count.scalar_one() == 1


@pytest.mark.asyncio
async def test_register_duplicate_identifier(client):
    """Can't register with the same email twice."""
    email = _email("dup")
    r1 = await _register(client, email)
    assert r1.status_code == 201

    r2 = await _register(client, email)
    assert r2.status_code == 409
    assert r2.json()["error"]["reason"] == "AccountExists"


@pytest.mark.asyncio
async def test_register_cannot_pick_admin_role(client):
    r = await _register(client, _email(), role="ADMIN")
    assert r.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"password": "abc"},
        {"identifier": "not-an-identifier"},
        {"identifier": "12345"},
        {"name": "A"},
    ],
)
async def test_register_validation(client, overrides):
    body = {"identifier": _email(), "name": "Test User", "password": TEST_PASSWORD}
    body.update(overrides)
    r = await client.post("/api/v1/auth/register", json=body)
    assert r.status_code == 422  # validation error


@pytest.mark.asyncio
async def test_register_delivery_failure_rolls_back(client, otp_sender, db_session):
    """If the code can't be sent, the account is removed so a retry works."""
    otp_sender.fail = True
    email = _email()
    r = await _register(client, email)
    assert r.status_code == 502
    assert r.json()["error"]["reason"] == "DeliveryFailed"

    users = await db_session.execute(select(func.count()).select_from(User))
    customers = await db_session.execute(select(func.count()).select_from(Customer))
    assert users.scalar_one() == 0
    assert customers.scalar_one() == 0

    otp_sender.fail = False
    retry = await _register(client, email)
    assert retry.status_code == 201


# ═══════════════════════════════════════════════════════════
# Password login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client, codec):
    """Login with valid credentials returns a token for the user."""
    email = _email("login")
    await _register(client, email, role="ARTISAN")

    r = await client.post(
        "/api/v1/auth/login",
        json={"identifier": email, "password": TEST_PASSWORD},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == email
    assert data["requires_profile_completion"] is True

    claims = codec.verify(data["token"])
    assert claims.id == data["user"]["id"]
    assert claims.role == UserRole.ARTISAN
    assert claims.is_email_verified is False


@pytest.mark.asyncio
async def test_login_wrong_password(client):
    email = _email("wrong")
    await _register(client, email)

    r = await client.post(
        "/api/v1/auth/login",
        json={"identifier": email, "password": "not-the-password"},
    )
    assert r.status_code == 401
    assert r.json()["error"] == {"reason": "LoginFailed", "message": "Invalid credentials."}


@pytest.mark.asyncio
async def test_login_unknown_user(client):
    r = await client.post(
        "/api/v1/auth/login",
        json={"identifier": _email("ghost"), "password": TEST_PASSWORD},
    )
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Invalid credentials."


@pytest.mark.asyncio
async def test_login_oauth_only_account(client, make_user):
    """Accounts created through a provider have no password to log in with."""
    user = await make_user(password_hash=None)
    r = await client.post(
        "/api/v1/auth/login",
        json={"identifier": user.email, "password": TEST_PASSWORD},
    )
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Admin login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_admin_must_use_admin_login(client, make_user):
    admin = await make_user(UserRole.ADMIN)

    r = await client.post(
        "/api/v1/auth/login",
        json={"identifier": admin.email, "password": TEST_PASSWORD},
    )
    assert r.status_code == 401

    r = await client.post(
        "/api/v1/auth/admin/login",
        json={"email": admin.email, "password": TEST_PASSWORD},
    )
    assert r.status_code == 200
    assert r.json()["user"]["role"] == "ADMIN"
    assert r.json()["requires_profile_completion"] is False


@pytest.mark.asyncio
async def test_admin_login_rejects_non_admins(client, make_user):
    customer = await make_user(UserRole.CUSTOMER)
    r = await client.post(
        "/api/v1/auth/admin/login",
        json={"email": customer.email, "password": TEST_PASSWORD},
    )
    assert r.status_code == 401
    assert r.json()["error"]["reason"] == "LoginFailed"


# ═══════════════════════════════════════════════════════════
# One-time codes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_signup_code_verifies_email(client, otp_sender, codec):
    email = _email("verify")
    await _register(client, email)
    code = otp_sender.last_code(email)

    r = await client.post("/api/v1/auth/otp/verify", json={"identifier": email, "code": code})
    assert r.status_code == 200
    data = r.json()
    assert data["user"]["is_email_verified"] is True
    assert codec.verify(data["token"]).is_email_verified is True


@pytest.mark.asyncio
async def test_code_cannot_be_replayed(client, otp_sender):
    email = _email("replay")
    await _register(client, email)
    body = {"identifier": email, "code": otp_sender.last_code(email)}

    assert (await client.post("/api/v1/auth/otp/verify", json=body)).status_code == 200
    r = await client.post("/api/v1/auth/otp/verify", json=body)
    assert r.status_code == 401
    assert r.json()["error"]["message"] == "Invalid or expired code."


@pytest.mark.asyncio
async def test_passwordless_login_with_phone(client, make_user, otp_sender):
    user = await make_user(email=None, phone="+14155550123", is_email_verified=False)

    r = await client.post("/api/v1/auth/otp/request", json={"identifier": "+14155550123"})
    assert r.status_code == 200
    assert r.json()["expires_in"] == 300
    assert otp_sender.sent[-1][2] == OtpPurpose.LOGIN

    r = await client.post(
        "/api/v1/auth/otp/verify",
        json={"identifier": "+14155550123", "code": otp_sender.last_code("+14155550123")},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["user"]["id"] == str(user.id)
    assert data["user"]["is_phone_verified"] is True


@pytest.mark.asyncio
async def test_request_code_unknown_identifier(client):
    r = await client.post("/api/v1/auth/otp/request", json={"identifier": _email("nobody")})
    assert r.status_code == 401
    assert r.json()["error"]["reason"] == "LoginFailed"


@pytest.mark.asyncio
async def test_new_code_replaces_old_one(client, make_user, otp_sender):
    user = await make_user()
    await client.post("/api/v1/auth/otp/request", json={"identifier": user.email})
    first = otp_sender.last_code(user.email)
    await client.post("/api/v1/auth/otp/request", json={"identifier": user.email})
    second = otp_sender.last_code(user.email)

    if first != second:
        r = await client.post(
            "/api/v1/auth/otp/verify", json={"identifier": user.email, "code": first}
        )
        assert r.status_code == 401
    r = await client.post("/api/v1/auth/otp/verify", json={"identifier": user.email, "code": second})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_code_burned_after_three_wrong_guesses(client, make_user, otp_sender):
    user = await make_user()
    await client.post("/api/v1/auth/otp/request", json={"identifier": user.email})
    code = otp_sender.last_code(user.email)
    wrong = "000000" if code != "000000" else "111111"

    for _ in range(3):
        r = await client.post(
            "/api/v1/auth/otp/verify", json={"identifier": user.email, "code": wrong}
        )
        assert r.status_code == 401

    r = await client.post("/api/v1/auth/otp/verify", json={"identifier": user.email, "code": code})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_verify_code_format(client):
    r = await client.post(
        "/api/v1/auth/otp/verify", json={"identifier": _email(), "code": "12ab"}
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_verify_code_rejects_non_ascii_digits(client, make_user, otp_sender):
    """Arabic-Indic digits look like a 6-digit code but are not one."""
    user = await make_user()
    await client.post("/api/v1/auth/otp/request", json={"identifier": user.email})

    r = await client.post(
        "/api/v1/auth/otp/verify", json={"identifier": user.email, "code": "١٢٣٤٥٦"}
    )
    assert r.status_code == 422


# ═══════════════════════════════════════════════════════════
# Refresh and /me
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_with_token(client, make_user, auth_header):
    user = await make_user(UserRole.ARTISAN)
    r = await client.get("/api/v1/auth/me", headers=auth_header(user))
    assert r.status_code == 200
    data = r.json()
    assert data["claims"]["id"] == str(user.id)
    assert data["claims"]["role"] == "ARTISAN"
    assert data["claims"]["isEmailVerified"] is True
    assert data["user"]["artisan"] is not None


@pytest.mark.asyncio
async def test_refresh_reflects_current_user(client, make_user, auth_header, store, codec):
    """Claims are a snapshot; /refresh picks up changes made since."""
    user = await make_user(is_phone_verified=False)
    headers = auth_header(user)
    await store.update_user(user.id, {"is_phone_verified": True})

    r = await client.post("/api/v1/auth/refresh", headers=headers)
    assert r.status_code == 200
    assert codec.verify(r.json()["token"]).is_phone_verified is True


@pytest.mark.asyncio
async def test_refresh_requires_token(client):
    r = await client.post("/api/v1/auth/refresh")
    assert r.status_code == 401
    assert r.json()["error"]["reason"] == "Unauthenticated"
