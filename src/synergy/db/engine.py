"""Async engine, session factory, and the get_db dependency.

Learn: Postgres (asyncpg) gets a sized connection pool. SQLite is handed
to SQLAlchemy's own pool choice, which rejects pool_size/max_overflow, so
a local `sqlite+aiosqlite://` URL works with no other changes.
"""

from sqlalchemy import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from synergy.config import settings


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an engine for `url`, with pool sizing only where it applies."""
    kwargs = {}
    if make_url(url).get_backend_name() != "sqlite":
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
        )
    return create_async_engine(url, echo=echo, **kwargs)


engine = build_engine(settings.database_url, echo=settings.debug)

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncSession:
    """One session per request; closed when the response is done."""
    async with async_session_factory() as session:
        yield session
