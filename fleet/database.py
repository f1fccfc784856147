"""Async engine, sessions and table setup for the fleet database."""
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Plain URL scheme -> async driver scheme
ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def async_database_url(database_url: str) -> str:
    """Point a plain postgres/sqlite URL at its async driver; others pass through."""
    for scheme, async_scheme in ASYNC_DRIVERS.items():
        if database_url.startswith(scheme):
            return async_scheme + database_url[len(scheme):]
    return database_url


def create_async_db_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Build the engine shared by the API and the seed script.

    Args:
        database_url: DATABASE_URL as configured, with or without a driver
        echo: Log every SQL statement (DEBUG)
    """
    return create_async_engine(async_database_url(database_url), echo=echo, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Objects stay readable after commit
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create users, vehicles and vehicle_trips if they are missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """One session per request, from the factory the lifespan put on app.state."""
    async with request.app.state.session_factory() as session:
        yield session
