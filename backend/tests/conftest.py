"""
Pytest configuration and shared fixtures for checkout tests.

Provides an in-memory SQLite catalog, an httpx ASGI client bound to it,
session tokens, seeded users/courses, and a mocked Razorpay gateway.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings

# ── Test Configuration ───────────────────────────────────────────────
# Test-only values for settings that would normally come from .env
settings.jwt_secret = "test-jwt-secret-for-pytest-only"
settings.razorpay_key_id = "rzp_test_publickey"
settings.razorpay_key_secret = "s3cret"
settings.payment_currency = "INR"
settings.currency_exponent = 2

from main import app  # noqa: E402
from database import Base, enable_sqlite_savepoints, get_db  # noqa: E402
from middleware.auth import issue_access_token  # noqa: E402
from middleware.rate_limit import limiter  # noqa: E402
import db_models  # noqa: E402,F401

STUDENT_ID = "5b0e6a52-8b1f-4c61-9d0a-0f5e4c1a2b01"
OTHER_STUDENT_ID = "5b0e6a52-8b1f-4c61-9d0a-0f5e4c1a2b02"
INSTRUCTOR_ID = "9c1d7e63-2a4b-4d5e-8f60-1a2b3c4d5e6f"


# ── Database Fixtures ────────────────────────────────────────────────


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an in-memory SQLite database session for each test.

    Uses StaticPool to allow in-memory SQLite with async SQLAlchemy.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """ASGI client with get_db overridden to the test session."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    limiter.reset()
    yield
    limiter.reset()


# ── Auth Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def student_id() -> str:
    return STUDENT_ID


@pytest.fixture
def other_student_id() -> str:
    return OTHER_STUDENT_ID


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {issue_access_token(user_id=STUDENT_ID)}"}


@pytest.fixture
def other_auth_headers() -> dict:
    return {"Authorization": f"Bearer {issue_access_token(user_id=OTHER_STUDENT_ID)}"}


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest_asyncio.fixture
async def users(db_session: AsyncSession):
    from db_models import User

    rows = [
        User(id=INSTRUCTOR_ID, email="teacher@example.com", role="instructor"),
        User(id=STUDENT_ID, email="student@example.com", role="student"),
        User(id=OTHER_STUDENT_ID, email="other@example.com", role="student"),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return rows


@pytest.fixture
def make_course(db_session: AsyncSession, users):
    """Factory: await make_course(price="499.00", is_flagged=True, ...)."""
    from db_models import Course

    counter = {"n": 0}

    async def _make(price="499.00", **overrides):
        counter["n"] += 1
        fields = {
            "instructor_id": INSTRUCTOR_ID,
            "title": f"Python for Data Science {counter['n']}",
            "slug": f"python-data-science-{counter['n']}",
            "price": Decimal(str(price)),
            "is_approved": True,
            "is_published": True,
            "is_flagged": False,
        }
        fields.update(overrides)
        course = Course(**fields)
        db_session.add(course)
        await db_session.commit()
        await db_session.refresh(course)
        return course

    return _make


@pytest_asyncio.fixture
async def paid_course(make_course):
    return await make_course(price="499.00")


# ── Mock Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def mock_gateway():
    """Mock Razorpay order creation; echoes amount/currency back."""
    counter = {"n": 0}

    async def _create_order(amount, currency, receipt, notes=None):
        counter["n"] += 1
        return {"id": f"order_test{counter['n']:04d}", "amount": amount, "currency": currency}

    mock = AsyncMock(side_effect=_create_order)
    with patch("services.gateway_service.create_order", mock):
        yield mock
