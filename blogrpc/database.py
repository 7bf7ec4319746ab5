import logging
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from blogrpc.middleware import install_query_counter

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    """
    Owns the engine and session factory for one database URL.

    Nothing is created until the first call that needs the engine, and
    it is created at most once.  When *url* is empty, or the engine
    cannot be built (bad URL, missing driver), the handle reports itself
    unavailable for good and ``session()`` returns None so callers can degrade
    instead of crashing.
    """

    def __init__(self, url: str | None, **engine_options) -> None:
        self.url = url
        self._engine_options = engine_options
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None
        self._failed = False

    @property
    def engine(self) -> AsyncEngine | None:
        if self._engine is None and self.url and not self._failed:
            try:
                engine = create_async_engine(self.url, **self._engine_options)
            except (ArgumentError, ImportError) as exc:
                logger.warning("Failed to create database engine: %s", exc)
                self._failed = True
                return None
            install_query_counter(engine)
            self._engine = engine
            self._sessionmaker = async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._engine

    @property
    def available(self) -> bool:
        return self.engine is not None

    def session(self) -> AsyncSession | None:
        """Return a new session, or None when no database is available."""
        if self.engine is None:
            return None
        return self._sessionmaker()

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None


async def get_db(request: Request) -> AsyncIterator[AsyncSession | None]:
    """
    Request-scoped session bound to ``app.state.database``.

    Yields None when no database is configured; the service layer turns
    that into empty reads or a DatabaseUnavailableError for mutations.
    """
    session = request.app.state.database.session()
    if session is None:
        yield None
        return
    async with session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
