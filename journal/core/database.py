# DB connections

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
import structlog

from journal.models.event import Base

logger = structlog.get_logger()


class Database:
    """Explicit store handle: opened at startup, disposed at shutdown"""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self.engine: AsyncEngine | None = None
        self.sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    async def connect(self, create_schema: bool = False):
        kwargs = {"echo": self.echo}
        if not self.is_sqlite:
            kwargs.update(pool_size=20, max_overflow=0)

        self.engine = create_async_engine(self.url, **kwargs)
        self.sessionmaker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        if create_schema:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("database_schema_created")

        logger.info("database_connected", dialect=self.engine.dialect.name)

    async def dispose(self):
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("database_disposed")
        self.engine = None
        self.sessionmaker = None

    def session(self) -> AsyncSession:
        if self.sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self.sessionmaker()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency for getting async database session"""
    database: Database = request.app.state.db
    async with database.session() as session:
        try:
            yield session
        finally:
            await session.close()
