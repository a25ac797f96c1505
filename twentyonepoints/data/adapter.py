from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool, StaticPool

from twentyonepoints.core.logging import get_logger
from twentyonepoints.data.entity import EntityMetadata, get_all_entities, metadata
from twentyonepoints.exceptions import DataAccessException

logger = get_logger(__name__)


class SQLAlchemyAdapter:
    """Owns the async engine every repository talks through."""

    def __init__(self):
        self.engine: Optional[AsyncEngine] = None
        self.url: Optional[str] = None

    async def connect(
        self,
        url: str,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        enable_pooling: bool = True,
    ):
        """
        Create the engine.

        SQLite in-memory databases get a ``StaticPool`` so every session
        sees the same data; file-backed SQLite and disabled pooling use
        ``NullPool``.
        """
        self.url = url
        kwargs = {"echo": echo}

        if url.startswith("sqlite"):
            if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
                kwargs["poolclass"] = StaticPool
                kwargs["connect_args"] = {"check_same_thread": False}
            else:
                kwargs["poolclass"] = NullPool
        elif not enable_pooling:
            kwargs["poolclass"] = NullPool
        else:
            kwargs.update(
                poolclass=AsyncAdaptedQueuePool,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                pool_pre_ping=True,
            )

        self.engine = create_async_engine(url, **kwargs)
        logger.info(f"Connected to database {self.engine.url.render_as_string(hide_password=True)}")

    async def disconnect(self):
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None

    async def create_table_if_not_exists(self, entity_meta: EntityMetadata):
        async with self.connection() as conn:
            await conn.run_sync(entity_meta.table.create, checkfirst=True)

    async def create_tables(self):
        """Create the tables of every registered entity."""
        for entity_meta in get_all_entities().values():
            await self.create_table_if_not_exists(entity_meta)

    async def drop_tables(self):
        async with self.connection() as conn:
            await conn.run_sync(metadata.drop_all)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """A connection inside a transaction, committed on clean exit."""
        if self.engine is None:
            raise DataAccessException("Database adapter is not connected")
        async with self.engine.begin() as conn:
            yield conn


_adapter: Optional[SQLAlchemyAdapter] = None


def set_database_adapter(adapter: Optional[SQLAlchemyAdapter]):
    global _adapter
    _adapter = adapter


def get_database_adapter() -> SQLAlchemyAdapter:
    if _adapter is None:
        raise DataAccessException(
            "No database adapter configured; call initialize_database() first"
        )
    return _adapter
