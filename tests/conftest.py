"""
Pytest Configuration and Shared Fixtures

Each test gets its own SQLite database file, a Razorpay gateway backed by a
mocked SDK client, and (for route tests) an httpx client bound to the app.
"""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

# Must be set before app modules build settings / the engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["ENVIRONMENT"] = "development"
os.environ["RAZORPAY_KEY_ID_DEV"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET_DEV"] = "rzp_test_secret"
os.environ["RAZORPAY_WEBHOOK_SECRET_DEV"] = "whsec_test"
os.environ["JWT_SECRET"] = "test-jwt-secret"

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.deps import get_gateway
from app.core.config import EntitlementConfig
from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.main import app
from app.models import Plan, Subscription, User
from app.services.billing import RazorpayGateway

WEBHOOK_SECRET = "whsec_test"


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ============================================================================
# RAZORPAY
# ============================================================================

def provider_subscription(**overrides) -> dict:
    """A Razorpay subscription entity as the API returns it."""
    entity = {
        "id": "sub_test_123",
        "entity": "subscription",
        "plan_id": "plan_rzp_monthly",
        "status": "created",
        "current_start": None,
        "current_end": None,
        "charge_at": None,
        "start_at": None,
        "end_at": None,
        "quantity": 1,
        "total_count": 12,
        "paid_count": 0,
        "short_url": "https://rzp.io/i/test",
    }
    entity.update(overrides)
    return entity


@pytest.fixture
def razorpay_client():
    client = MagicMock()
    client.subscription.create.return_value = provider_subscription()
    client.subscription.fetch.return_value = provider_subscription()
    client.subscription.cancel.return_value = provider_subscription(status="cancelled", end_at=1_700_000_000)
    return client


@pytest.fixture
def gateway(razorpay_client):
    return RazorpayGateway("rzp_test_key", "rzp_test_secret", client=razorpay_client)


@pytest.fixture
def config():
    return EntitlementConfig()


# ============================================================================
# DATA
# ============================================================================

@pytest.fixture
def make_user(db):
    async def _make(usage_count=0, email=None):
        user = User(
            email=email or f"user{usage_count}-{datetime.now().timestamp()}@example.com",
            display_name="Test User",
            usage_count=usage_count,
        )
        db.add(user)
        await db.commit()
        return user
    return _make


@pytest.fixture
def make_plan(db):
    async def _make(razorpay_plan_id="plan_rzp_monthly", is_prod=False, name="Monthly"):
        plan = Plan(
            name=name,
            price=49900,
            razorpay_plan_id=razorpay_plan_id,
            interval=1,
            period="monthly",
            cycles=12,
            is_prod=is_prod,
        )
        db.add(plan)
        await db.commit()
        return plan
    return _make


@pytest.fixture
def make_subscription(db):
    async def _make(user, status="created", razorpay_id="sub_test_123", age=timedelta(0), **fields):
        subscription = Subscription(
            user_id=user.id,
            razorpay_subscription_id=razorpay_id,
            status=status,
            created_at=datetime.now(timezone.utc) - age,
            **fields,
        )
        db.add(subscription)
        await db.commit()
        return subscription
    return _make


# ============================================================================
# HTTP
# ============================================================================

@pytest.fixture
async def client(session_factory, gateway):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}
