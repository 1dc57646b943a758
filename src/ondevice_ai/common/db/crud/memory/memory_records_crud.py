# CRUD operations for memory records
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy import select, delete, func
from ondevice_ai.common.db.models.base import MemoryDB_Base
from ondevice_ai.common.db.models.memory.memory_records import MemoryRecordRow
from ondevice_ai.common.db.session import get_async_session_maker
from ondevice_ai.common.logging.logger import logger
from datetime import datetime
from typing import Any, Optional

async def create_memory_tables(main_db_engine: AsyncEngine) -> None:
    """Create all memory tables if they don't exist yet."""
    async with main_db_engine.begin() as conn:
        await conn.run_sync(MemoryDB_Base.metadata.create_all)

async def save_memory_record(
    content: str,
    embedding: list[float],
    main_db_engine: AsyncEngine,
    metadata: Optional[dict[str, Any]] = None,
    created_at: Optional[datetime] = None,
) -> MemoryRecordRow:
    """
    Insert a memory record and return the persisted row (with its assigned id).

    Args:
        content: The original text that was embedded
        embedding: The embedding vector (list of floats)
        main_db_engine: Async database engine
        metadata: Optional flat mapping stored alongside the text
        created_at: Optional timestamp (defaults to now)
    """
    session_maker = get_async_session_maker(main_db_engine)

    try:
        async with session_maker() as session:
            row = MemoryRecordRow(
                content=content,
                embedding=embedding,
                metadata_=metadata or None,
            )
            if created_at is not None:
                row.created_at = created_at
            session.add(row)
            await session.commit()
            await session.refresh(row)
            logger.info(f"Saved memory record {row.id}")
            return row
    except Exception as e:
        logger.error(f"Failed to save memory record: {e}")
        raise

async def get_memory_record(
    memory_id: int,
    main_db_engine: AsyncEngine
) -> Optional[MemoryRecordRow]:
    session_maker = get_async_session_maker(main_db_engine)

    try:
        async with session_maker() as session:
            stmt = select(MemoryRecordRow).where(MemoryRecordRow.id == memory_id)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
    except Exception as e:
        logger.error(f"Failed to get memory record by ID: {e}")
        raise

async def get_first_embedding(main_db_engine: AsyncEngine) -> Optional[list[float]]:
    """Any one stored embedding, used to recover the store's dimensionality after a restart."""
    session_maker = get_async_session_maker(main_db_engine)

    async with session_maker() as session:
        stmt = select(MemoryRecordRow.embedding).order_by(MemoryRecordRow.id).limit(1)
        result = await session.execute(stmt)
        embedding = result.scalar_one_or_none()
        return [float(v) for v in embedding] if embedding is not None else None

async def load_all_embeddings(main_db_engine: AsyncEngine) -> list[tuple[int, list[float]]]:
    """
    Load every (id, embedding) pair for in-process similarity ranking.
    NOTE: full scan; fine for on-device sized stores, swap for an ANN index (pgvector HNSW) if it grows.
    """
    session_maker = get_async_session_maker(main_db_engine)

    try:
        async with session_maker() as session:
            stmt = select(MemoryRecordRow.id, MemoryRecordRow.embedding)
            result = await session.execute(stmt)
            return [(row[0], [float(v) for v in row[1]]) for row in result.all()]
    except Exception as e:
        logger.error(f"Failed to load embeddings: {e}")
        raise

async def get_memory_records_by_ids(
    memory_ids: list[int],
    main_db_engine: AsyncEngine
) -> dict[int, MemoryRecordRow]:
    if not memory_ids:
        return {}
    session_maker = get_async_session_maker(main_db_engine)

    async with session_maker() as session:
        stmt = select(MemoryRecordRow).where(MemoryRecordRow.id.in_(memory_ids))
        result = await session.execute(stmt)
        return {row.id: row for row in result.scalars().all()}

async def list_memory_records(
    main_db_engine: AsyncEngine,
    limit: int = 100,
    offset: int = 0,
) -> list[MemoryRecordRow]:
    """Newest-first page of memory records."""
    session_maker = get_async_session_maker(main_db_engine)

    try:
        async with session_maker() as session:
            stmt = (
                select(MemoryRecordRow)
                .order_by(MemoryRecordRow.id.desc())
                .limit(limit)
                .offset(offset)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())
    except Exception as e:
        logger.error(f"Failed to list memory records: {e}")
        raise

async def count_memory_records(main_db_engine: AsyncEngine) -> int:
    session_maker = get_async_session_maker(main_db_engine)

    async with session_maker() as session:
        result = await session.execute(select(func.count()).select_from(MemoryRecordRow))
        return int(result.scalar_one())

async def search_memory_records_by_text(
    search_text: str,
    main_db_engine: AsyncEngine,
    limit: int = 10,
) -> list[MemoryRecordRow]:
    """Case-insensitive substring match on content, newest first."""
    session_maker = get_async_session_maker(main_db_engine)

    try:
        async with session_maker() as session:
            # escape LIKE wildcards so the search text matches literally
            escaped = search_text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            stmt = (
                select(MemoryRecordRow)
                .where(func.lower(MemoryRecordRow.content).like(f"%{escaped.lower()}%", escape="\\"))
                .order_by(MemoryRecordRow.id.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())
    except Exception as e:
        logger.error(f"Failed to search memory records by text: {e}")
        raise

async def delete_memory_record(
    memory_id: int,
    main_db_engine: AsyncEngine
) -> bool:
    """
    Delete a memory record by id.

    Returns:
        True if deleted, False if not found
    """
    session_maker = get_async_session_maker(main_db_engine)

    try:
        async with session_maker() as session:
            result = await session.execute(delete(MemoryRecordRow).where(MemoryRecordRow.id == memory_id))
            await session.commit()
            if result.rowcount and result.rowcount > 0:
                logger.info(f"Deleted memory record {memory_id}")
                return True
            logger.warning(f"No memory record found for id {memory_id}")
            return False
    except Exception as e:
        logger.error(f"Failed to delete memory record: {e}")
        raise
