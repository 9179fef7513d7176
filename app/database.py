"""
Database connection and session management.
Uses asyncpg with SQLAlchemy async in production, aiosqlite in tests.

The engine lives on an explicit `Database` handle that the application
opens in its lifespan and closes at shutdown. Services never build their
own client; they receive an `AsyncSession`.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def get_database_url(url: str) -> str:
    """Normalize DATABASE_URL for the async driver."""
    if not url:
        return ""
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    # asyncpg doesn't support sslmode as query param
    if "?sslmode=" in url:
        url = url.split("?sslmode=")[0]
    elif "&sslmode=" in url:
        url = url.replace("&sslmode=require", "").replace("&sslmode=disable", "")
    return url


class Database:
    """Owns the async engine and session factory."""

    def __init__(self, url: str, echo: bool = False):
        self.url = get_database_url(url)
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None
        self.session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    def open(self) -> None:
        """Create the engine. Safe to call more than once."""
        if self.engine is not None:
            return
        if not self.url:
            raise RuntimeError("Database not configured. Set DATABASE_URL environment variable.")

        if self.url.startswith("sqlite"):
            self.engine = create_async_engine(self.url, echo=self.echo)
        else:
            self.engine = create_async_engine(
                self.url,
                echo=self.echo,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
            )

        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def close(self) -> None:
        """Dispose engine connections."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.session_maker = None

    async def ping(self) -> bool:
        """Run SELECT 1 against the database."""
        self.open()
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Transactional session: commit on success, rollback on error."""
        self.open()
        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


def create_database() -> Database:
    """Build the database handle from settings."""
    return Database(settings.database_url, echo=settings.debug)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    database: Database = request.app.state.db
    async with database.session() as session:
        yield session
