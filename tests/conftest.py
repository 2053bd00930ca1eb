import logging
import os
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport


# Set test environment variables before imports
os.environ['REDIS_HOST'] = 'localhost'
os.environ['REDIS_PORT'] = '6379'
os.environ['REDIS_DB'] = '0'
os.environ['REDIS_PASSWORD'] = ''  # No password for mock
os.environ['INDEXER_ENABLED'] = 'false'


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("wallet_gateway.tests")


@pytest.fixture
def settings():
    """Settings built from the test environment."""
    from core.environment.config import Settings
    return Settings()


@pytest.fixture
def registry(settings):
    """Registry of the five supported networks."""
    from networks.registry import NetworkRegistry
    return NetworkRegistry.from_settings(settings)


@pytest.fixture
def database_url(tmp_path, monkeypatch) -> str:
    """
    Point the transaction store at a fresh SQLite file.

    Returns
    -------
    str
        SQLAlchemy URL of the test database
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'transactions.db'}"
    monkeypatch.setenv('DATABASE_URL', url)
    return url


@pytest_asyncio.fixture
async def mock_redis():
    """Mock Redis client for testing."""
    mock = AsyncMock()
    mock.ping = AsyncMock(return_value=True)
    mock.get = AsyncMock(return_value=None)
    mock.setex = AsyncMock(return_value=True)
    mock.aclose = AsyncMock()
    return mock


@pytest_asyncio.fixture
async def app(mock_redis, database_url):
    """
    Fixture for a fresh application with mocked Redis.

    Parameters
    ----------
    mock_redis : AsyncMock
        Mocked Redis client
    database_url : str
        Test database URL

    Yields
    ------
    FastAPI
        Application whose container is closed after the test
    """
    with patch('core.redis.providers.Redis', return_value=mock_redis):
        from main import create_app

        application = create_app()
        yield application
        await application.state.dishka_container.close()


@pytest_asyncio.fixture
async def client(app):
    """
    Fixture for async test client.

    Parameters
    ----------
    app : FastAPI
        Application under test

    Yields
    ------
    AsyncClient
        Async HTTP client for testing
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def store(database_url, logger):
    """
    Fixture for a transaction store on a fresh SQLite file.

    Yields
    ------
    TransactionStore
        Store whose engine is disposed after the test
    """
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from core.database.providers import build_engine
    from transactions.store import TransactionStore

    engine = build_engine(database_url)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    transaction_store = TransactionStore(engine=engine, session_factory=session_factory, logger=logger)
    await transaction_store.create_schema()
    yield transaction_store
    await engine.dispose()


@pytest_asyncio.fixture
async def wallets(store, logger):
    """Wallet registrations sharing the store's database."""
    from transactions.wallets import WalletRegistrationStore
    return WalletRegistrationStore(session_factory=store.session_factory, logger=logger)
