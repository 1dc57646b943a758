# persistent vector store: (text, embedding, metadata) records + k-nearest-neighbour search

import asyncio
from typing import Any, Optional

import numpy as np
from sqlalchemy.ext.asyncio import AsyncEngine

from ondevice_ai.common.exceptions import DimensionMismatchError
from ondevice_ai.common.logging.logger import logger
from ondevice_ai.memory.memory_types import MemoryRecord
from ondevice_ai.common.db.crud.memory.memory_records_crud import (
    create_memory_tables,
    save_memory_record,
    get_memory_record,
    get_first_embedding,
    load_all_embeddings,
    get_memory_records_by_ids,
    list_memory_records,
    count_memory_records,
    search_memory_records_by_text,
    delete_memory_record,
)

def cosine_similarity(a: list[float], b: list[float]) -> float:
    """
    Cosine similarity between two vectors using numpy.
    Returns 0.0 if either vector has zero norm (undefined similarity).
    """
    va, vb = np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64)
    norm_a, norm_b = np.linalg.norm(va), np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))

class VectorStore():
    """
    Stores embedded text records and answers nearest-neighbour queries by cosine similarity.
    - The first insert fixes the embedding dimensionality; after a restart it is recovered from any stored row.
    - Ranking is computed in-process with numpy over all stored vectors.
    - Zero-norm vectors never appear in query results.
    - Concurrent reads and independent inserts are fine; the dimension check + insert is serialized.
    """

    def __init__(self, main_db_engine: AsyncEngine, dimension: Optional[int] = None):
        self.main_db_engine = main_db_engine
        self._dimension: Optional[int] = dimension
        self._dimension_loaded = dimension is not None
        self._write_lock = asyncio.Lock()

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    async def initialize(self) -> None:
        await create_memory_tables(self.main_db_engine)
        await self._load_dimension()

    async def _load_dimension(self) -> None:
        if self._dimension_loaded:
            return
        existing = await get_first_embedding(self.main_db_engine)
        if existing is not None:
            self._dimension = len(existing)
            logger.info(f"Vector store dimensionality recovered from storage: {self._dimension}")
        self._dimension_loaded = True

    async def add(
        self,
        content: str,
        embedding: list[float],
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Persist a record and return its new id. Fails with DimensionMismatchError on a wrong-length vector."""
        if not embedding:
            raise ValueError("Embedding must not be empty")
        async with self._write_lock:
            await self._load_dimension()
            self.check_dimension(embedding)

            row = await save_memory_record(
                content=content,
                embedding=[float(v) for v in embedding],
                main_db_engine=self.main_db_engine,
                metadata=metadata,
            )
            # only fixed once a row actually backs it
            if self._dimension is None:
                self._dimension = len(embedding)
                logger.info(f"Vector store dimensionality fixed at {self._dimension}")
        return row.id

    def check_dimension(self, embedding: list[float]) -> None:
        """Raises DimensionMismatchError if the store's dimensionality is fixed and differs."""
        if self._dimension is not None and len(embedding) != self._dimension:
            raise DimensionMismatchError(self._dimension, len(embedding))

    async def query(self, query_embedding: list[float], k: int) -> list[tuple[MemoryRecord, float]]:
        """
        Top-k records by descending cosine similarity, ties broken by higher (more recent) id.
        - k <= 0 or an empty store returns [].
        - A zero-norm query vector matches nothing.
        """
        if k <= 0:
            return []

        rows = await load_all_embeddings(self.main_db_engine)
        if not rows:
            return []

        await self._load_dimension()
        if self._dimension is not None and len(query_embedding) != self._dimension:
            raise DimensionMismatchError(self._dimension, len(query_embedding))

        query_vector = np.asarray(query_embedding, dtype=np.float64)
        query_norm = np.linalg.norm(query_vector)
        if query_norm == 0.0:
            logger.warning("Zero-norm query vector, no similarity can be computed")
            return []

        ids = np.array([row_id for row_id, _ in rows], dtype=np.int64)
        matrix = np.array([vector for _, vector in rows], dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1)

        # drop degenerate stored vectors before dividing
        valid = norms > 0.0
        if not valid.any():
            return []
        ids, matrix, norms = ids[valid], matrix[valid], norms[valid]

        scores = (matrix @ query_vector) / (norms * query_norm)
        # lexsort: last key is primary -> score desc, then id desc
        order = np.lexsort((-ids, -scores))[:k]

        top_ids = [int(ids[i]) for i in order]
        records = await get_memory_records_by_ids(top_ids, self.main_db_engine)

        results: list[tuple[MemoryRecord, float]] = []
        for i in order:
            row = records.get(int(ids[i]))
            # deleted between the scan and the fetch
            if row is None:
                continue
            results.append((MemoryRecord.from_row(row), float(scores[i])))
        return results

    async def get(self, memory_id: int) -> Optional[MemoryRecord]:
        row = await get_memory_record(memory_id, self.main_db_engine)
        return MemoryRecord.from_row(row) if row is not None else None

    async def delete(self, memory_id: int) -> bool:
        return await delete_memory_record(memory_id, self.main_db_engine)

    async def list_records(self, limit: int = 100, offset: int = 0) -> list[MemoryRecord]:
        """Newest-first page of records."""
        rows = await list_memory_records(self.main_db_engine, limit=limit, offset=offset)
        return [MemoryRecord.from_row(row) for row in rows]

    async def count(self) -> int:
        return await count_memory_records(self.main_db_engine)

    async def search_text(self, search_text: str, limit: int = 10) -> list[MemoryRecord]:
        rows = await search_memory_records_by_text(search_text, self.main_db_engine, limit=limit)
        return [MemoryRecord.from_row(row) for row in rows]
