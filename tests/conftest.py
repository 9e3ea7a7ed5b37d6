"""
Test fixtures and configuration.
"""
from collections.abc import AsyncGenerator
from urllib.parse import parse_qsl

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from socialconnect.main import app
from socialconnect.database import Base, get_db
from socialconnect.connect import ConnectionFactoryRegistry
from socialconnect.oauth1 import OAuth1Version
from socialconnect.providers import (
    GenericOAuth1Api,
    GenericOAuth1ConnectionFactory,
    GenericOAuth2Api,
    GenericOAuth2ConnectionFactory,
)
from socialconnect.repositories.sql import SQLUsersConnectionRepository
from socialconnect.services.social import (
    build_authentication_service_registry,
    get_authentication_service_registry,
    get_connection_factory_registry,
)
from socialconnect.config import get_settings
from socialconnect.utils.security import get_password_hash, create_access_token

# Test database
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test_socialconnect.db"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

PROVIDER_URL = "https://provider.test"


class StubOAuth2Api(GenericOAuth2Api):
    provider_id = "stub2"


class StubOAuth1Api(GenericOAuth1Api):
    provider_id = "stub1"


class FakeProvider:
    """
    OAuth1 and OAuth2 provider served through ``httpx.MockTransport``.
    
    Authorization code ``code-<id>`` and verifier ``verifier-<id>`` grant
    access to the account ``<id>``; access tokens look like ``access-<id>``.
    """

    def __init__(self):
        self.accounts = {
            "9": {"id": "9", "name": "Keith Donald", "profile_url": "https://provider.test/keith", "picture": "https://provider.test/keith.jpg", "username": "kdonald", "email": "keith@example.com"},
            "10": {"id": "10", "name": "Roy Clarkson", "profile_url": "https://provider.test/roy", "picture": "https://provider.test/roy.jpg"},
        }
        self.revoked: set[str] = set()
        self.requests: list[httpx.Request] = []
        self.expires_in: int | str | None = 3600
        # /api/me answers 503 once this many calls have succeeded
        self.me_calls_before_outage: int | None = None
        self.me_calls = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/oauth2/token":
            return self._oauth2_token(request)
        if path == "/oauth1/request_token":
            return httpx.Response(200, text="oauth_token=request-token&oauth_token_secret=request-secret&oauth_callback_confirmed=true")
        if path == "/oauth1/access_token":
            return self._oauth1_access_token(request)
        if path == "/api/me":
            return self._me(request)
        return httpx.Response(404)

    def _oauth2_token(self, request: httpx.Request) -> httpx.Response:
        form = dict(parse_qsl(request.content.decode()))
        if form["grant_type"] == "authorization_code":
            account_id = form["code"].removeprefix("code-")
            if account_id not in self.accounts:
                return httpx.Response(400, json={"error": "invalid_grant"})
            access_token = f"access-{account_id}"
        elif form["grant_type"] == "refresh_token":
            account_id = form["refresh_token"].removeprefix("refresh-")
            access_token = f"access-{account_id}-refreshed"
        else:
            return httpx.Response(400, json={"error": "unsupported_grant_type"})
        body = {"access_token": access_token, "refresh_token": f"refresh-{account_id}"}
        if self.expires_in is not None:
            body["expires_in"] = self.expires_in
        return httpx.Response(200, json=body)

    def _oauth1_access_token(self, request: httpx.Request) -> httpx.Response:
        header = request.headers["Authorization"]
        verifier = header.split('oauth_verifier="', 1)[1].split('"', 1)[0]
        account_id = verifier.removeprefix("verifier-")
        return httpx.Response(200, text=f"oauth_token=access-{account_id}&oauth_token_secret=secret-{account_id}")

    def _me(self, request: httpx.Request) -> httpx.Response:
        header = request.headers.get("Authorization", "")
        if header.startswith("Bearer "):
            token = header.removeprefix("Bearer ")
        elif 'oauth_token="' in header:
            token = header.split('oauth_token="', 1)[1].split('"', 1)[0]
        else:
            return httpx.Response(401, json={"error": "missing token"})
        account_id = token.removeprefix("access-").split("-", 1)[0]
        if account_id not in self.accounts or token in self.revoked:
            return httpx.Response(401, json={"error": "invalid token"})
        if self.me_calls_before_outage is not None and self.me_calls >= self.me_calls_before_outage:
            return httpx.Response(503, json={"error": "down"})
        self.me_calls += 1
        return httpx.Response(200, json=self.accounts[account_id])


def make_oauth2_factory(transport: httpx.AsyncBaseTransport, provider_id: str = "stub2", api_type: type = StubOAuth2Api):
    return GenericOAuth2ConnectionFactory(
        provider_id,
        "client-id",
        "client-secret",
        f"{PROVIDER_URL}/oauth2/authorize",
        f"{PROVIDER_URL}/oauth2/token",
        f"{PROVIDER_URL}/api/me",
        api_type=api_type,
        transport=transport,
    )


def make_oauth1_factory(transport: httpx.AsyncBaseTransport, provider_id: str = "stub1", api_type: type = StubOAuth1Api):
    return GenericOAuth1ConnectionFactory(
        provider_id,
        "consumer-key",
        "consumer-secret",
        f"{PROVIDER_URL}/oauth1/request_token",
        f"{PROVIDER_URL}/oauth1/authorize",
        f"{PROVIDER_URL}/oauth1/access_token",
        f"{PROVIDER_URL}/api/me",
        authenticate_url=f"{PROVIDER_URL}/oauth1/authenticate",
        version=OAuth1Version.CORE_10_REVISION_A,
        api_type=api_type,
        transport=transport,
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_transport(fake_provider: FakeProvider) -> httpx.MockTransport:
    return httpx.MockTransport(fake_provider.handler)


@pytest.fixture
def connection_factory_registry(provider_transport) -> ConnectionFactoryRegistry:
    """Registry with one OAuth2 and one OAuth1 provider backed by FakeProvider."""
    return ConnectionFactoryRegistry([
        make_oauth2_factory(provider_transport),
        make_oauth1_factory(provider_transport),
    ])


@pytest.fixture
def authentication_service_registry(connection_factory_registry):
    return build_authentication_service_registry(connection_factory_registry, get_settings())


@pytest_asyncio.fixture(scope="function")
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    async with TestSessionLocal() as session:
        yield session
    
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def users_connection_repository(db, connection_factory_registry) -> SQLUsersConnectionRepository:
    return SQLUsersConnectionRepository(db, connection_factory_registry)


@pytest_asyncio.fixture(scope="function")
async def client(
    db: AsyncSession,
    connection_factory_registry,
    authentication_service_registry,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database and provider overrides."""
    async def override_get_db():
        yield db
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_connection_factory_registry] = lambda: connection_factory_registry
    app.dependency_overrides[get_authentication_service_registry] = lambda: authentication_service_registry
    
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    
    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, username: str, email: str):
    from socialconnect.models.user import User
    
    user = User(
        username=username,
        email=email,
        full_name=username.title(),
        hashed_password=get_password_hash("testpassword123"),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_user(db: AsyncSession):
    """Create a test user."""
    return await _create_user(db, "testuser", "test@example.com")


@pytest_asyncio.fixture(scope="function")
async def other_user(db: AsyncSession):
    return await _create_user(db, "otheruser", "other@example.com")


@pytest_asyncio.fixture(scope="function")
async def auth_headers(test_user) -> dict:
    """Create auth headers for test user."""
    token = create_access_token(data={"sub": test_user.id})
    return {"Authorization": f"Bearer {token}"}
