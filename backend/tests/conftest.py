"""Pytest fixtures: test client, SQLite DB, in-memory storage, bearer tokens for two owners."""
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from scanvault.main import app
from scanvault.core.config import get_settings
from scanvault.core.rate_limit import reset_rate_limits
from scanvault.core.revocation import RevocationSet
from scanvault.core.security import create_access_token
from scanvault.db.models import Base
from scanvault.db.session import get_db
from scanvault.services.records import RecordStore
from scanvault.services.storage import StorageGateway
from scanvault.services.storage.memory import InMemoryStorage
from scanvault.services.sweeper import ReconciliationSweeper, SweepScheduler

SCAN_SECRET = "test-scan-secret"
OWNER_ID = "owner-a"
OTHER_OWNER_ID = "owner-b"


def bearer(owner_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(owner_id)}"}


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Settings are cached; patch the shared instance so module-level references see the change."""
    settings = get_settings()
    monkeypatch.setattr(settings, "scan_webhook_secret", SCAN_SECRET)
    reset_rate_limits()
    yield settings
    reset_rate_limits()


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scanvault_test.db'}", echo=False)
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


@pytest.fixture
def records(db: AsyncSession) -> RecordStore:
    return RecordStore(db, timeout_seconds=5)


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def storage(memory_storage: InMemoryStorage) -> StorageGateway:
    return StorageGateway(memory_storage, timeout_seconds=5)


@pytest.fixture
def sweeper(session_factory, storage) -> ReconciliationSweeper:
    return ReconciliationSweeper(
        session_factory,
        storage,
        grace_period=timedelta(minutes=5),
        scan_timeout=timedelta(minutes=15),
        batch_size=100,
        db_timeout_seconds=5,
    )


@pytest.fixture
async def client(session_factory, storage, sweeper):
    async def get_db_override():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = get_db_override
    # ASGITransport does not run the lifespan; wire app state directly
    app.state.storage = storage
    app.state.revocations = RevocationSet(max_entries=100)
    app.state.sweep_scheduler = SweepScheduler(sweeper, interval_seconds=3600)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def owner_headers() -> dict[str, str]:
    return bearer(OWNER_ID)


@pytest.fixture
def other_headers() -> dict[str, str]:
    return bearer(OTHER_OWNER_ID)


@pytest.fixture
def scan_headers() -> dict[str, str]:
    return {"X-Scan-Secret": SCAN_SECRET}
