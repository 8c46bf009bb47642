"""Async DB session."""
from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from scanvault.core.config import get_settings
from scanvault.db.models import Base

settings = get_settings()


def _connect_args(url: str) -> dict:
    # asyncpg enforces a server-side bound per statement
    if url.startswith("postgresql+asyncpg"):
        return {"command_timeout": settings.db_timeout_seconds}
    return {}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
)
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Create tables (Alembic handles migrations; this is for tests or explicit init)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
