"""Async engine, session factory and schema bootstrap."""

from sqlalchemy import inspect, make_url, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from leadmarket.app.config import get_settings


class Base(DeclarativeBase):
    """Declarative base shared by every leadmarket model."""
    pass


def is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def engine_options(url: str) -> dict:
    """Driver-specific keyword arguments for ``create_async_engine``."""
    if is_sqlite(url):
        # The expiry sweep can hold the write lock while a request waits
        return {"connect_args": {"check_same_thread": False, "timeout": 30}}
    return {"pool_pre_ping": True}


_url = get_settings().database_url
engine = create_async_engine(_url, **engine_options(_url))

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """FastAPI dependency: yield an async database session."""
    async with async_session() as session:
        yield session


async def init_db(bind: AsyncEngine | None = None) -> list[str]:
    """Create missing tables and return the table names now present.

    Local/dev bootstrap only; schema changes in production go through migrations.
    """
    import leadmarket.domain.models  # noqa: F401

    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        if bind.dialect.name == "sqlite":
            # WAL lets request handlers read while the expiry sweep writes
            await conn.execute(text("PRAGMA journal_mode=WAL"))
            await conn.execute(text("PRAGMA busy_timeout=30000"))
        return await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
