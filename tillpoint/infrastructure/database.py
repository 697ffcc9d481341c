"""Database configuration and session management.

Provides async SQLAlchemy engine and session factory.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from tillpoint.infrastructure.config import settings

# SQL name of the Unicode case-folding function used by catalog search
CASEFOLD_FUNCTION = "casefold"


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value else value


@event.listens_for(Engine, "connect")
def register_sqlite_functions(dbapi_connection: Any, connection_record: Any) -> None:
    """Register SQL functions on new SQLite connections.

    SQLite's ``lower()`` only folds ASCII; ``casefold()`` matches
    Python's ``str.casefold`` so stored and in-memory searches agree.
    """
    create_function = getattr(dbapi_connection, "create_function", None)
    if create_function is not None:
        create_function(CASEFOLD_FUNCTION, 1, _casefold, deterministic=True)


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Base class for models
Base = declarative_base()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Yields:
        AsyncSession for database operations.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_models() -> None:
    """Create missing tables.

    The till runs on a local SQLite file, so tables are created at
    startup instead of through migrations.
    """
    # Register models on Base.metadata
    import tillpoint.catalog.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
