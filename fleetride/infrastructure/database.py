"""
Async SQLAlchemy engine and session factory.

Uses ``asyncpg`` as the PostgreSQL driver for non-blocking I/O.  Waiting
for a pooled connection is bounded by ``db_pool_timeout_seconds`` so no
request can block on the pool indefinitely.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from fleetride.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_size=settings.db_pool_size,
    max_overflow=10,
    pool_timeout=settings.db_pool_timeout_seconds,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    # Fetch server-generated timestamps on INSERT/UPDATE so objects stay
    # fully loaded after the session that wrote them is closed.
    __mapper_args__ = {"eager_defaults": True}
