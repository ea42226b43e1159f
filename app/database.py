"""SQLAlchemy async engine + read-only sessions against the managed backend.

The backend owns the schema and every write; this service only reads, so
sessions handed out by :func:`get_db` refuse to flush.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=(settings.env == "development"),
    pool_pre_ping=True,
)
async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


class Base(DeclarativeBase):
    pass


def _refuse_flush(session, flush_context, instances) -> None:
    raise InvalidRequestError("backend session is read-only")


@asynccontextmanager
async def read_only_session(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with factory() as session:
        event.listen(session.sync_session, "before_flush", _refuse_flush)
        try:
            yield session
        finally:
            await session.rollback()


async def get_db() -> AsyncIterator[AsyncSession]:
    async with read_only_session(async_session) as session:
        yield session


async def init_db() -> None:
    """Create all tables (dev convenience — the managed backend owns the schema)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
