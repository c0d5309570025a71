import os
from typing import Any, AsyncGenerator, Dict, Optional

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Set environment before importing the app
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ENVIRONMENT"] = "test"
os.environ["EMAIL_SERVICE"] = "console"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["STRIPE_PRICE_MONTHLY"] = "price_monthly"
os.environ["STRIPE_PRICE_QUARTERLY"] = "price_quarterly"
os.environ["STRIPE_PRICE_ANNUAL"] = "price_annual"

PASSWORD = "Sup3rSecret!"


class FakeStripeGateway:
    """Records calls and returns canned Stripe objects."""

    def __init__(self) -> None:
        self.events: Dict[str, Dict[str, Any]] = {}
        self.subscriptions: Dict[str, Dict[str, Any]] = {}
        self.checkout_sessions: Dict[str, Dict[str, Any]] = {}
        self.checkout_calls = []

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        from fastapi import HTTPException

        if not signature:
            raise HTTPException(status_code=400, detail="Missing Stripe signature")
        if signature not in self.events:
            raise HTTPException(status_code=400, detail="Invalid Stripe signature")
        return self.events[signature]

    async def create_checkout_session(self, **params: Any) -> Dict[str, Any]:
        self.checkout_calls.append(params)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    async def create_portal_session(self, customer: str, return_url: str) -> Dict[str, Any]:
        return {"url": f"https://billing.stripe.test/{customer}"}

    async def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return self.subscriptions[subscription_id]

    async def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]:
        return self.checkout_sessions[session_id]


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database per test."""
    import vivaform_api.db.models  # noqa: F401
    from vivaform_api.db.base import Base

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(name="session_maker")
async def session_maker_fixture(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(name="session")
async def session_fixture(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(name="stripe_gateway")
async def stripe_gateway_fixture() -> FakeStripeGateway:
    return FakeStripeGateway()


@pytest_asyncio.fixture(name="client")
async def client_fixture(session_maker, stripe_gateway) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with the session and Stripe dependencies overridden."""
    from vivaform_api.core.settings import get_app_settings

    get_app_settings.cache_clear()

    from vivaform_api.api.main import app
    from vivaform_api.db.session import get_async_session
    from vivaform_api.services.stripe_gateway import get_stripe_gateway

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = get_session_override
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
        yield client

    app.dependency_overrides.clear()
    get_app_settings.cache_clear()


async def register(client: AsyncClient, email: str, password: str = PASSWORD, name: str = "Test") -> Dict[str, Any]:
    response = await client.post("/api/v1/auth/register", json={"email": email, "password": password, "name": name})
    assert response.status_code == 201, response.text
    return response.json()


def bearer(auth: Dict[str, Any]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {auth['tokens']['access_token']}"}


async def create_user(
    session_maker, email: str, role: str = "USER", tier: str = "FREE", password: str = PASSWORD
):
    from vivaform_api.core.security import get_password_hash
    from vivaform_api.repositories.users import UserRepository

    async with session_maker() as session:
        return await UserRepository(session).create(
            email=email, password_hash=get_password_hash(password), name=email.split("@")[0], role=role, tier=tier
        )


async def login_headers(client: AsyncClient, email: str, password: str = PASSWORD) -> Dict[str, str]:
    response = await client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return bearer(response.json())


@pytest_asyncio.fixture(name="user_auth")
async def user_auth_fixture(client: AsyncClient) -> Dict[str, Any]:
    return await register(client, "user@example.com")


@pytest_asyncio.fixture(name="user_headers")
async def user_headers_fixture(user_auth) -> Dict[str, str]:
    return bearer(user_auth)


@pytest_asyncio.fixture(name="admin_headers")
async def admin_headers_fixture(client: AsyncClient, session_maker) -> Dict[str, str]:
    await create_user(session_maker, "admin@example.com", role="ADMIN", tier="PREMIUM")
    return await login_headers(client, "admin@example.com")


@pytest_asyncio.fixture(name="premium_headers")
async def premium_headers_fixture(client: AsyncClient, session_maker) -> Dict[str, str]:
    await create_user(session_maker, "premium@example.com", tier="PREMIUM")
    return await login_headers(client, "premium@example.com")
