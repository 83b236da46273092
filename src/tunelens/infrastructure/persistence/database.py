"""Async engine and transactional sessions for the session table."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tunelens.config import Settings
from tunelens.infrastructure.persistence.models import Base

logger = logging.getLogger(__name__)


def _engine_options(url: str, echo: bool) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": echo}
    if url.startswith("sqlite"):
        # Renewal timers, poll loops and requests write concurrently; wait for the lock
        options["connect_args"] = {"check_same_thread": False, "timeout": 30}
        # An in-memory database exists per connection, so every scope must share one
        if ":memory:" in url:
            options["poolclass"] = StaticPool
    return options


class Database:
    """Owns the engine; hands out one AsyncSession per unit of work."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._engine = create_async_engine(
            settings.database.url,
            **_engine_options(settings.database.url, settings.database.echo),
        )
        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Commit when the block exits normally, roll back and re-raise otherwise."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create the session table if missing (startup)."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.debug("Session table ensured at %s", self._engine.url.render_as_string())

    async def drop_tables(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self) -> None:
        await self._engine.dispose()
