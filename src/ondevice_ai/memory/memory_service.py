# semantic memory facade over VectorStore + text embedding client

import asyncio
from collections import OrderedDict
from typing import Any, Optional

from ondevice_ai.common.exceptions import DimensionMismatchError, EmptyInputError
from ondevice_ai.common.logging.logger import logger
from ondevice_ai.common.services.embedding_service.text_embedding.dispatcher import TypedTextEmbeddingClient
from ondevice_ai.memory.memory_types import MemoryRecord, ScoredMemory
from ondevice_ai.memory.vector_store import VectorStore

class MemoryService():
    """
    Semantic add/query operations used directly by the API and by RAG + agent tools.
    - Handles embedding internally so callers only deal with text.
    - Constructed once at app wiring time and injected; no process-wide singleton.

    Caches:
    1. Exact match cache for query embeddings - skips the embedding client on identical (trimmed) query texts (LRU via OrderedDict, max 50)
    NOTE: caches the query vector, not the results, so new memories are still visible to repeated queries.
    """

    def __init__(self, vector_store: VectorStore, text_embedding_client: TypedTextEmbeddingClient):
        self.vector_store = vector_store
        self.text_embedding_client = text_embedding_client
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._query_vector_cache: OrderedDict[str, list[float]] = OrderedDict()
        self._query_vector_cache_max = 50

    # =====================================================================
    # Lifecycle
    # =====================================================================

    async def initialize(self) -> None:
        """Create storage and recover the store dimensionality. Safe to call concurrently and repeatedly."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            await self.vector_store.initialize()
            self._initialized = True
            logger.info("Memory service initialized")

    async def ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    async def close(self) -> None:
        self._query_vector_cache.clear()
        self._initialized = False

    # =====================================================================
    # Writes
    # =====================================================================

    async def add_memory(self, text: str, metadata: Optional[dict[str, Any]] = None) -> int:
        await self.ensure_initialized()
        content = _require_text(text, "Memory text")

        embedding = await self.text_embedding_client.aembed(content)
        memory_id = await self.vector_store.add(content, embedding, metadata)
        logger.info(f"Added memory {memory_id}: {content[:60]}")
        return memory_id

    async def add_memories(
        self,
        texts: list[str],
        metadata: Optional[dict[str, Any]] = None,
    ) -> list[int]:
        """
        Embed all texts in a single provider call, then store them in order.
        Every vector is checked against the store before the first insert, so a dimension mismatch stores nothing.
        """
        await self.ensure_initialized()
        contents = [_require_text(text, "Memory text") for text in texts]
        if not contents:
            return []

        embeddings = await self.text_embedding_client.aembed_batch(contents)
        for embedding in embeddings:
            if len(embedding) != len(embeddings[0]):
                raise DimensionMismatchError(len(embeddings[0]), len(embedding))
            self.vector_store.check_dimension(embedding)

        ids = []
        for content, embedding in zip(contents, embeddings):
            ids.append(await self.vector_store.add(content, embedding, metadata))
        logger.info(f"Added {len(ids)} memories in batch")
        return ids

    async def delete_memory(self, memory_id: int) -> bool:
        await self.ensure_initialized()
        return await self.vector_store.delete(memory_id)

    # =====================================================================
    # Reads
    # =====================================================================

    async def query_memory(self, query: str, k: int = 5) -> list[str]:
        """Contents of the k most similar memories, best first. Empty list if nothing is stored."""
        scored = await self.query_memory_with_scores(query, k)
        return [item.record.content for item in scored]

    async def query_memory_with_scores(self, query: str, k: int = 5) -> list[ScoredMemory]:
        await self.ensure_initialized()
        normalized = _require_text(query, "Query")
        if k <= 0:
            return []
        # nothing to rank, skip the embedding call
        if await self.vector_store.count() == 0:
            return []

        query_vector = await self._embed_query(normalized)
        results = await self.vector_store.query(query_vector, k)
        return [ScoredMemory(record=record, score=score) for record, score in results]

    async def get_memory(self, memory_id: int) -> Optional[MemoryRecord]:
        await self.ensure_initialized()
        return await self.vector_store.get(memory_id)

    async def get_all_memories(self, limit: int = 100, offset: int = 0) -> list[MemoryRecord]:
        await self.ensure_initialized()
        return await self.vector_store.list_records(limit=limit, offset=offset)

    async def get_memory_count(self) -> int:
        await self.ensure_initialized()
        return await self.vector_store.count()

    async def search_memories_by_text(self, search_text: str, limit: int = 10) -> list[MemoryRecord]:
        """Plain substring search, for when semantic search is unavailable or too fuzzy."""
        await self.ensure_initialized()
        normalized = _require_text(search_text, "Search text")
        return await self.vector_store.search_text(normalized, limit=limit)

    # =====================================================================
    # Utils for cache management
    # =====================================================================

    async def _embed_query(self, query: str) -> list[float]:
        if query in self._query_vector_cache:
            logger.info(f"Query embedding cache hit: {query}")
            self._query_vector_cache.move_to_end(query)
            return self._query_vector_cache[query]

        query_vector = await self.text_embedding_client.aembed(query)
        self._query_vector_cache[query] = query_vector
        if len(self._query_vector_cache) > self._query_vector_cache_max:
            self._query_vector_cache.popitem(last=False) # evict LRU
        return query_vector

def _require_text(text: str, label: str) -> str:
    normalized = (text or "").strip()
    if not normalized:
        raise EmptyInputError(f"{label} must not be empty")
    return normalized
