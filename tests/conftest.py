import os

# Settings are read at import time, so the test environment goes first
os.environ.setdefault("SECRET_KEY", "test_secret_key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from datetime import timedelta
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool
from unittest.mock import AsyncMock, patch

from app.db.session import get_db
from app.db.redis import get_optional_redis, get_redis
from app.main import app
from app.models.base import Base, utcnow
from app.models.users import User, UserRole, VerificationToken
from app.core.config import settings
from app.core.security import create_access_token, get_password_hash

TEST_PASSWORD = "Str0ng!Pass"

engine = create_async_engine(
    "sqlite+aiosqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = async_sessionmaker(
    engine, expire_on_commit=False, class_=AsyncSession
)


@pytest.fixture(scope="function")
async def test_db():
    """Create test database tables before tests and drop them after"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session(test_db):
    """Create a clean database session for each test"""
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
async def test_user(db_session):
    """Create a verified user and return credentials"""
    user = User(
        name="Test User",
        email="test@example.com",
        password_hash=get_password_hash(TEST_PASSWORD),
        email_verified=utcnow() - timedelta(days=1),
        role=UserRole.USER,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)

    return {
        "user": user,
        "email": "test@example.com",
        "password": TEST_PASSWORD,
        "id": user.id,
        "sid": user.sid
    }


@pytest.fixture
async def unverified_user(db_session):
    """Create a user who has not confirmed the email yet"""
    user = User(
        name="Pending User",
        email="pending@example.com",
        password_hash=get_password_hash(TEST_PASSWORD),
        role=UserRole.USER,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def verification_token(db_session, unverified_user):
    """Create a valid verification token for the unverified user"""
    token = VerificationToken(
        email=unverified_user.email,
        token="a" * 64,
        expires=utcnow() + timedelta(hours=1),
    )
    db_session.add(token)
    await db_session.commit()
    await db_session.refresh(token)
    return token


@pytest.fixture
async def mock_redis():
    """Mock Redis client"""
    redis_mock = AsyncMock()
    redis_mock.get.return_value = None
    redis_mock.set.return_value = True
    redis_mock.delete.return_value = True
    redis_mock.incr.return_value = 1
    redis_mock.expire.return_value = True
    return redis_mock


@pytest.fixture(autouse=True)
def mock_email_service():
    """Keep registration and resend from talking to SMTP"""
    with patch("app.services.registration.send_verification_email", new_callable=AsyncMock) as mock:
        mock.return_value = {"id": "test-message", "message": "Email sent"}
        yield mock


@pytest.fixture(autouse=True)
def mock_domain_check():
    """Treat every email domain as live unless a test says otherwise"""
    with patch("app.services.registration.validate_email_domain", new_callable=AsyncMock) as mock:
        mock.return_value = True
        yield mock


@pytest.fixture
def legacy_registration(monkeypatch):
    monkeypatch.setattr(settings, "REGISTRATION_VARIANT", "legacy")


@pytest.fixture
async def client(db_session, mock_redis):
    """Create test client with mocked dependencies"""

    async def override_get_db():
        yield db_session

    async def override_get_redis():
        return mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_optional_redis] = override_get_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides = {}


@pytest.fixture
def test_token(test_user):
    """Generate a test token"""
    return create_access_token(subject=test_user["sid"])


@pytest.fixture
def authorized_client(client, test_token):
    """Create authorized client with authentication token"""
    client.headers["Authorization"] = f"Bearer {test_token}"
    return client
