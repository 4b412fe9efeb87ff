"""Test fixtures — a fresh in-memory database per test, fake OAuth servers.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own aiosqlite in-memory engine. StaticPool keeps a
   single connection alive so every session sees the same database.
2. The app's get_db dependency is overridden to hand out that session,
   so the routes and the test body share one view of the data.
3. OAuth providers are the real GoogleProvider/GitHubProvider wired to an
   httpx.MockTransport, so provider HTTP handling is exercised without
   network access. One-time codes go to a RecordingSender the test can read.

Environment variables are set before anything from crafthub is imported,
because the settings object is loaded once at import time.
"""

import os

os.environ["CRAFTHUB_ENVIRONMENT"] = "test"
os.environ["CRAFTHUB_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CRAFTHUB_JWT_SECRET"] = "test-secret-for-the-suite-only-0123456789"
os.environ["CRAFTHUB_BCRYPT_ROUNDS"] = "4"

import uuid
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from crafthub.auth.password import hash_password
from crafthub.config import settings
from crafthub.db.engine import get_db
from crafthub.db.models import AuthProvider, Base, OtpPurpose, User, UserRole
from crafthub.identity.providers import build_providers
from crafthub.identity.providers.github import GITHUB_EMAILS_URL
from crafthub.identity.resolver import provision_sub_profile
from crafthub.identity.store import SqlRecordStore
from crafthub.main import app

TEST_DB_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "secure_password_123"


# ═══════════════════════════════════════════════════════════
# Database
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a brand-new in-memory database."""
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def store(db_session):
    return SqlRecordStore(db_session)


@pytest_asyncio.fixture()
async def make_user(store):
    """Factory: insert a user (plus sub-profile) straight into the store.

    Learn: Most API tests need a user in a particular state (role, flags)
    and a token for it. Creating it here instead of via /auth/register
    keeps those tests focused on the route under test.
    """

    async def _make(role: UserRole = UserRole.CUSTOMER, **overrides) -> User:
        data = {
            "email": f"user-{uuid.uuid4().hex[:8]}@example.com",
            "name": "Test User",
            "password_hash": hash_password(TEST_PASSWORD),
            "role": role,
            "auth_provider": AuthProvider.EMAIL,
            "is_email_verified": True,
            "is_phone_verified": False,
            "profile_complete": False,
        }
        data.update(overrides)
        user = await store.create_user(data)
        await provision_sub_profile(store, user.id, role)
        return await store.get_user(user.id)

    return _make


# ═══════════════════════════════════════════════════════════
# Tokens
# ═══════════════════════════════════════════════════════════


@pytest.fixture()
def codec():
    """The app's own codec, so tokens minted here pass the real pipeline."""
    return app.state.token_codec


@pytest.fixture()
def auth_header(codec):
    def _header(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {codec.issue(user)}"}

    return _header


# ═══════════════════════════════════════════════════════════
# One-time code delivery
# ═══════════════════════════════════════════════════════════


class RecordingSender:
    """OtpSender that keeps every code instead of sending it."""

    def __init__(self):
        self.sent: list[tuple[str, str, OtpPurpose]] = []
        self.fail = False

    async def send(self, identifier: str, code: str, purpose: OtpPurpose) -> bool:
        if self.fail:
            return False
        self.sent.append((identifier, code, OtpPurpose(purpose)))
        return True

    def last_code(self, identifier: str) -> str:
        for sent_to, code, _ in reversed(self.sent):
            if sent_to == identifier:
                return code
        raise AssertionError(f"no code sent to {identifier}")


@pytest.fixture()
def otp_sender():
    return RecordingSender()


# ═══════════════════════════════════════════════════════════
# OAuth providers
# ═══════════════════════════════════════════════════════════


class FakeOAuthServer:
    """Answers Google and GitHub OAuth endpoints from in-memory tables.

    - codes:         authorization code → access token
    - google_users:  access token → Google userinfo JSON
    - github_users:  access token → GitHub /user JSON
    - github_emails: access token → GitHub /user/emails JSON
    """

    def __init__(self):
        self.codes: dict[str, str] = {}
        self.google_users: dict[str, dict] = {}
        self.github_users: dict[str, dict] = {}
        self.github_emails: dict[str, list] = {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if request.method == "POST":
            form = parse_qs(request.content.decode())
            token = self.codes.get(form.get("code", [""])[0])
            if token is None:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": token, "token_type": "bearer"})

        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if url == GITHUB_EMAILS_URL:
            table = self.github_emails
        elif "github" in url:
            table = self.github_users
        else:
            table = self.google_users
        if token not in table:
            return httpx.Response(401, json={"error": "invalid_token"})
        return httpx.Response(200, json=table[token])


@pytest.fixture()
def oauth_server():
    return FakeOAuthServer()


@pytest_asyncio.fixture()
async def providers(oauth_server):
    """Real provider classes, configured as if both had credentials."""
    provider_settings = settings.model_copy(
        update={
            "google_client_id": "google-client",
            "google_client_secret": "google-secret",
            "github_client_id": "github-client",
            "github_client_secret": "github-secret",
        }
    )
    transport = httpx.MockTransport(oauth_server.handler)
    async with httpx.AsyncClient(transport=transport) as http:
        yield build_providers(provider_settings, http=http)


# ═══════════════════════════════════════════════════════════
# HTTP client
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def client(db_session, otp_sender, providers):
    """HTTP client with the database, code sender and providers overridden.

    Learn: Authentication is NOT overridden. Protected routes need a real
    bearer token (see the auth_header fixture), so every test that hits
    a gated route also exercises the token codec and the gates.
    """
    from crafthub.api.deps import get_identity_providers, get_otp_sender

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_otp_sender] = lambda: otp_sender
    app.dependency_overrides[get_identity_providers] = lambda: providers

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
