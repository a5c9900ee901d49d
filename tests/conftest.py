import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

# Load environment variables from .env file
load_dotenv()

from app.config import ExternalProviderSettings, settings
from app.core.redis_client import CacheManager
from app.core.security import create_session_token
from app.database import get_db
from app.dependencies import get_cache_manager, get_tfl_service
from app.main import app
from app.models import metadata
from app.schemas.users import RoleClaim, UserDocument, UserLogin
from app.services.account_service import AccountService
from app.services.auth_service import AuthService
from app.services.document_service import DocumentService
from app.services.line_validator import LineValidator
from app.services.manage_service import ManageService
from app.services.tfl_service import LineInfo, TflService

# Tests run against an in-memory SQLite database unless TEST_DATABASE_URL
# points at a disposable PostgreSQL database
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

if TEST_DATABASE_URL.startswith("postgresql://"):
    TEST_DATABASE_URL = TEST_DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

if TEST_DATABASE_URL.startswith("sqlite"):
    # One shared connection, or every session would see its own empty database
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
else:
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

ACTIVE_LINES = [
    "bakerloo",
    "central",
    "district",
    "dlr",
    "elizabeth",
    "northern",
    "victoria",
]


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest.fixture
def redis_store() -> dict:
    """Backing data for the mocked Redis client."""
    return {}


@pytest.fixture
def mock_redis(redis_store: dict) -> MagicMock:
    """Redis client mock that keeps values in a dict."""
    mock = MagicMock()
    mock.get.side_effect = redis_store.get
    mock.set.side_effect = lambda key, value: redis_store.__setitem__(key, value)
    mock.setex.side_effect = lambda key, ttl, value: redis_store.__setitem__(key, value)
    mock.delete.side_effect = lambda key: int(redis_store.pop(key, None) is not None)
    mock.exists.side_effect = lambda key: int(key in redis_store)
    mock.ping.return_value = True
    return mock


@pytest.fixture
def cache_manager(mock_redis: MagicMock) -> CacheManager:
    return CacheManager(mock_redis)


@pytest.fixture
def documents(db_session: AsyncSession) -> DocumentService:
    return DocumentService(db_session)


@pytest.fixture
def accounts(documents: DocumentService, cache_manager: CacheManager) -> AccountService:
    return AccountService(documents, cache_manager)


@pytest.fixture
def auth_service(accounts: AccountService, cache_manager: CacheManager) -> AuthService:
    return AuthService(accounts, cache_manager)


@pytest.fixture
def mock_tfl_service() -> MagicMock:
    """TfL client mock listing the active test lines."""
    service = MagicMock(spec=TflService)
    service.get_lines = AsyncMock(return_value=[LineInfo(id=line_id, name=line_id.title()) for line_id in ACTIVE_LINES])
    return service


@pytest.fixture
def line_validator(mock_tfl_service: MagicMock) -> LineValidator:
    return LineValidator(mock_tfl_service)


@pytest.fixture
def manage_service(
    accounts: AccountService,
    auth_service: AuthService,
    line_validator: LineValidator,
) -> ManageService:
    return ManageService(accounts, auth_service, line_validator)


@pytest.fixture(autouse=True)
def enabled_providers(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Enable Google, GitHub and Apple sign-in for the duration of a test."""
    monkeypatch.setitem(
        settings.external_providers,
        "Google",
        ExternalProviderSettings(enabled=True, client_id="google-id", client_secret="google-secret"),
    )
    monkeypatch.setitem(
        settings.external_providers,
        "GitHub",
        ExternalProviderSettings(enabled=True, client_id="github-id", client_secret="github-secret"),
    )
    monkeypatch.setitem(
        settings.external_providers,
        "Apple",
        ExternalProviderSettings(enabled=True, client_id="apple-id"),
    )
    return ["Apple", "GitHub", "Google"]


@pytest.fixture
def make_user(documents: DocumentService) -> Callable[..., Awaitable[UserDocument]]:
    """Factory that stores a user with a unique Google login."""

    async def _make_user(**fields) -> UserDocument:
        fields.setdefault(
            "logins",
            [UserLogin(login_provider="Google", provider_key=uuid4().hex, provider_display_name="Google")],
        )
        user = UserDocument(**fields)
        await documents.create(user)
        return user

    return _make_user


@pytest_asyncio.fixture
async def test_user(make_user) -> UserDocument:
    """Create a test user in the database."""
    return await make_user(
        email="alice@example.com",
        email_normalized="ALICE@EXAMPLE.COM",
        user_name="alice@example.com",
        user_name_normalized="ALICE@EXAMPLE.COM",
        given_name="Alice",
        surname="Smith",
        favorite_lines=["central", "district"],
    )


@pytest_asyncio.fixture
async def admin_user(make_user) -> UserDocument:
    """Create a user holding the administrator role."""
    return await make_user(
        email="admin@example.com",
        email_normalized="ADMIN@EXAMPLE.COM",
        role_claims=[RoleClaim(claim_type="role", issuer="Google", value=settings.admin_role)],
    )


@pytest.fixture
def auth_headers(test_user: UserDocument) -> dict:
    """Create authentication headers for testing protected endpoints."""
    return {"Authorization": f"Bearer {create_session_token(test_user.id)}"}


@pytest.fixture
def admin_headers(admin_user: UserDocument) -> dict:
    return {"Authorization": f"Bearer {create_session_token(admin_user.id)}"}


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    cache_manager: CacheManager,
    mock_tfl_service: MagicMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: cache_manager
    app.dependency_overrides[get_tfl_service] = lambda: mock_tfl_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
