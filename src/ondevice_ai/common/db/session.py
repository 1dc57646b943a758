# async engine + session helpers for the memory database

from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ondevice_ai.common.logging.logger import logger

class DBType(str, Enum):
    MemoryDB = "memory_db"

class DBSettings(BaseModel):
    """Connection settings for a single database, parsed from the service settings."""
    url: str
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

def parse_db_settings_from_service(settings, db_type: DBType) -> DBSettings:
    """
    Pulls the connection settings for the given db out of the service settings.
    NOTE: only the memory db exists for now; new dbs get their own settings prefix.
    """
    if db_type == DBType.MemoryDB:
        return DBSettings(
            url=settings.MEMORY_DB_URL,
            pool_size=settings.MEMORY_DB_POOL_SIZE,
            max_overflow=settings.MEMORY_DB_MAX_OVERFLOW,
            pool_timeout=settings.MEMORY_DB_POOL_TIMEOUT,
            pool_recycle=settings.MEMORY_DB_POOL_RECYCLE,
            echo=settings.MEMORY_DB_ECHO,
        )
    raise ValueError(f"Unknown db type: {db_type}")

def create_db_engine(db_settings: DBSettings) -> AsyncEngine:
    engine_kwargs: dict = {"echo": db_settings.echo}
    # pool sizing only applies to server databases
    if not db_settings.is_sqlite:
        engine_kwargs.update(
            pool_size=db_settings.pool_size,
            max_overflow=db_settings.max_overflow,
            pool_timeout=db_settings.pool_timeout,
            pool_recycle=db_settings.pool_recycle,
            pool_pre_ping=True,
        )
    return create_async_engine(db_settings.url, **engine_kwargs)

@asynccontextmanager
async def create_db_engine_context(db_settings: DBSettings) -> AsyncIterator[AsyncEngine]:
    """
    Creates an async engine and disposes it on exit, for use with AsyncExitStack in the lifespan.
    """
    engine = create_db_engine(db_settings)
    try:
        yield engine
    finally:
        await engine.dispose()
        logger.info("Database engine disposed.")

def get_async_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False so returned rows stay readable after the session closes
    return async_sessionmaker(engine, expire_on_commit=False)
