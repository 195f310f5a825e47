"""
Pytest configuration and shared fixtures for backend tests.
"""

import os
import sys
from pathlib import Path

# Settings are read once at import time, so the test environment goes first
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-that-is-long-enough-123")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-1234567")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ["REDIS_URL"] = ""
os.environ["RESEND_API_KEY"] = ""

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from datetime import UTC, date, datetime, timedelta
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from adapters.payments import PaymentIntent, StripeAdapter
from core.security import PasswordHasher, TokenService
from infrastructure.config import get_settings
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    Base,
    Booking,
    Hospital,
    HospitalPackage,
    User,
    UserRole,
    UserRoleAssignment,
)

password_hasher = PasswordHasher(rounds=4)
settings = get_settings()
token_service = TokenService(secret_key=settings.jwt_secret_key)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "testpassword123"
WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session
        await session.rollback()


async def _make_user(
    db: AsyncSession,
    email: str,
    name: str,
    role: str = UserRole.USER.value,
    status: str = "active",
) -> User:
    user = User(
        id=str(uuid4()),
        email=email,
        password_hash=password_hasher.hash(TEST_PASSWORD),
        name=name,
        status=status,
    )
    user.role_assignment = UserRoleAssignment(role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def _headers_for(user: User) -> dict:
    access_token = token_service.create_access_token(user_id=user.id, email=user.email)
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user."""
    return await _make_user(db_session, "test@example.com", "Test User")


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user."""
    return _headers_for(test_user)


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "other@example.com", "Other User")


@pytest.fixture
def other_headers(other_user: User) -> dict:
    return _headers_for(other_user)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create a user holding the admin role."""
    return await _make_user(db_session, "admin@example.com", "Admin User", role=UserRole.ADMIN.value)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _headers_for(admin_user)


@pytest.fixture
async def hospital(db_session: AsyncSession) -> Hospital:
    """An approved hospital."""
    hospital = Hospital(
        hospital_name="Bangkok General",
        hospital_name_english="Bangkok General Hospital",
        slug="bangkok-general",
        contact_name="Dr. Somchai",
        phone="+66 2 000 0000",
        email="contact@bangkokgeneral.example",
        location="Bangkok",
        description="General and specialist care",
        status="approved",
    )
    db_session.add(hospital)
    await db_session.commit()
    await db_session.refresh(hospital)
    return hospital


@pytest.fixture
async def package(db_session: AsyncSession, hospital: Hospital) -> HospitalPackage:
    """A one-time health check package at the approved hospital."""
    package = HospitalPackage(
        hospital_id=hospital.id,
        name="Annual Health Check",
        package_type="one_time",
        price=3500.0,
        is_active=True,
    )
    db_session.add(package)
    await db_session.commit()
    await db_session.refresh(package)
    return package


@pytest.fixture
async def subscription_package(db_session: AsyncSession, hospital: Hospital) -> HospitalPackage:
    package = HospitalPackage(
        hospital_id=hospital.id,
        name="Physio Programme",
        package_type="package",
        duration_months=3,
        price=12000.0,
        is_active=True,
    )
    db_session.add(package)
    await db_session.commit()
    await db_session.refresh(package)
    return package


@pytest.fixture
async def booking(
    db_session: AsyncSession, test_user: User, hospital: Hospital, package: HospitalPackage
) -> Booking:
    """A pending, unpaid booking owned by test_user."""
    booking = Booking(
        booking_number="BK202601010001",
        user_id=test_user.id,
        hospital_id=hospital.id,
        package_id=package.id,
        customer_name="Test User",
        customer_email="test@example.com",
        customer_phone="0800000000",
        start_date=date.today() + timedelta(days=1),
        price_paid=package.price,
    )
    db_session.add(booking)
    await db_session.commit()
    await db_session.refresh(booking)
    return booking


class FakeStripeAdapter(StripeAdapter):
    """Stripe adapter that never leaves the process."""

    def __init__(self):
        super().__init__(secret_key="sk_test_dummy", webhook_secret=WEBHOOK_SECRET)
        self.created: list[dict] = []

    async def create_payment_intent(self, amount, currency=None, metadata=None, idempotency_key=None):
        self.created.append(
            {"amount": amount, "metadata": metadata, "idempotency_key": idempotency_key}
        )
        return PaymentIntent(
            id="pi_test_123",
            client_secret="pi_test_123_secret_abc",
            amount=int(round(amount * 100)),
            currency=currency or "thb",
            status="requires_payment_method",
            metadata=metadata or {},
        )


@pytest.fixture
def fake_stripe() -> FakeStripeAdapter:
    return FakeStripeAdapter()


@pytest.fixture
async def async_client(
    db_session: AsyncSession, fake_stripe: FakeStripeAdapter
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from api.routes.payments import get_stripe_adapter
    from main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stripe_adapter] = lambda: fake_stripe

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def now() -> datetime:
    return datetime.now(UTC)
