# tests for the semantic memory facade

import asyncio

import pytest

from ondevice_ai.common.exceptions import DimensionMismatchError, EmbeddingError, EmptyInputError
from ondevice_ai.common.services.embedding_service.text_embedding import TypedTextEmbeddingClient, TextEmbeddingProvider
from ondevice_ai.memory.memory_service import MemoryService
from ondevice_ai.memory.vector_store import VectorStore

from conftest import CountingEmbedder, FailingEmbedder

class RaggedEmbedder():
    """Returns vectors of differing lengths within one batch."""

    async def aembed_text(self, text: list[str], **kwargs) -> list[list[float]]:
        return [[1.0] * (2 + i) for i, _ in enumerate(text)]

class TestAddMemory:
    async def test_stores_trimmed_text(self, memory_service):
        memory_id = await memory_service.add_memory("   remember the milk  \n")
        record = await memory_service.get_memory(memory_id)
        assert record.content == "remember the milk"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_rejects_empty_text(self, memory_service, embedder, text):
        with pytest.raises(EmptyInputError):
            await memory_service.add_memory(text)
        assert embedder.calls == []

    async def test_empty_input_is_a_value_error(self, memory_service):
        with pytest.raises(ValueError):
            await memory_service.add_memory("")

    async def test_embedding_failure_propagates(self, vector_store):
        failing = TypedTextEmbeddingClient(provider=TextEmbeddingProvider.HASHING, client=FailingEmbedder())
        service = MemoryService(vector_store=vector_store, text_embedding_client=failing)

        with pytest.raises(EmbeddingError):
            await service.add_memory("this will not embed")
        assert await service.get_memory_count() == 0

    async def test_batch_add_uses_one_embedding_call(self, memory_service, embedder):
        ids = await memory_service.add_memories(["first note", "second note", "third note"], {"source": "import"})

        assert len(ids) == 3
        assert ids == sorted(ids)
        assert embedder.calls == [["first note", "second note", "third note"]]
        record = await memory_service.get_memory(ids[1])
        assert record.metadata == {"source": "import"}

    async def test_batch_add_rejects_any_empty_text(self, memory_service):
        with pytest.raises(EmptyInputError):
            await memory_service.add_memories(["fine", "  "])
        assert await memory_service.get_memory_count() == 0

    async def test_batch_with_wrong_dimension_stores_nothing(self, memory_service):
        await memory_service.add_memory("existing note")
        narrow = TypedTextEmbeddingClient(provider=TextEmbeddingProvider.HASHING, client=CountingEmbedder(embedding_size=8))
        service = MemoryService(vector_store=memory_service.vector_store, text_embedding_client=narrow)

        with pytest.raises(DimensionMismatchError):
            await service.add_memories(["a new note", "another new note"])
        assert await service.get_memory_count() == 1

    async def test_batch_with_mixed_lengths_stores_nothing(self, vector_store):
        ragged = TypedTextEmbeddingClient(provider=TextEmbeddingProvider.HASHING, client=RaggedEmbedder())
        service = MemoryService(vector_store=vector_store, text_embedding_client=ragged)

        with pytest.raises(DimensionMismatchError):
            await service.add_memories(["first", "second"])
        assert await service.get_memory_count() == 0
        assert vector_store.dimension is None

class TestQueryMemory:
    async def test_favorite_language_example(self, memory_service):
        await memory_service.add_memory("The weather in Paris is rainy this week")
        await memory_service.add_memory("The user's favorite language is TypeScript")
        await memory_service.add_memory("Buy milk and eggs tomorrow")

        results = await memory_service.query_memory("What language does the user like?", 1)
        assert results == ["The user's favorite language is TypeScript"]

    @pytest.mark.parametrize("content", [
        "Dentist appointment next Tuesday at 3pm",
        "My sister's birthday is on March 14",
        "The wifi password is on the fridge",
        "日本語のメモ: 来週の会議は火曜日",
        "Термин у стоматолога во вторник",
    ])
    async def test_added_content_is_found_by_same_text(self, memory_service, content):
        await memory_service.add_memory("Unrelated filler about gardening tools")
        await memory_service.add_memory(content)
        await memory_service.add_memory("Another note regarding car insurance renewal")

        results = await memory_service.query_memory(content, k=2)
        assert results[0] == content

    async def test_empty_query_rejected(self, memory_service):
        with pytest.raises(EmptyInputError):
            await memory_service.query_memory("   ")

    @pytest.mark.parametrize("k", [0, -3])
    async def test_non_positive_k_returns_empty(self, memory_service, k):
        await memory_service.add_memory("something stored")
        assert await memory_service.query_memory("something", k=k) == []

    async def test_empty_store_returns_empty_without_embedding(self, memory_service, embedder):
        assert await memory_service.query_memory("anything at all") == []
        assert embedder.calls == []

    async def test_repeated_query_reuses_cached_embedding(self, memory_service, embedder):
        await memory_service.add_memory("cached query target")
        embedder.calls.clear()

        await memory_service.query_memory("cached query")
        await memory_service.query_memory("  cached query  ")
        assert embedder.calls == [["cached query"]]

    async def test_cache_does_not_hide_new_memories(self, memory_service):
        await memory_service.add_memory("first fact about rust")
        assert await memory_service.query_memory("rust", k=5) == ["first fact about rust"]

        await memory_service.add_memory("second fact about rust")
        assert len(await memory_service.query_memory("rust", k=5)) == 2

    async def test_cache_is_bounded(self, memory_service):
        await memory_service.add_memory("seed")
        for i in range(60):
            await memory_service.query_memory(f"query number {i}")
        assert len(memory_service._query_vector_cache) == 50
        assert "query number 0" not in memory_service._query_vector_cache

    async def test_scores_are_returned_in_rank_order(self, memory_service):
        await memory_service.add_memory("coffee beans from Ethiopia")
        await memory_service.add_memory("coffee grinder settings")
        scored = await memory_service.query_memory_with_scores("coffee beans", k=2)

        assert scored[0].record.content == "coffee beans from Ethiopia"
        assert scored[0].score >= scored[1].score

class TestAccessors:
    async def test_pagination_count_and_delete(self, memory_service):
        ids = [await memory_service.add_memory(f"note {i}") for i in range(3)]

        assert await memory_service.get_memory_count() == 3
        page = await memory_service.get_all_memories(limit=2, offset=0)
        assert [r.id for r in page] == [ids[2], ids[1]]

        assert await memory_service.delete_memory(ids[0]) is True
        assert await memory_service.delete_memory(ids[0]) is False
        assert await memory_service.get_memory_count() == 2

    async def test_text_search(self, memory_service):
        await memory_service.add_memory("Passport expires in 2027")
        await memory_service.add_memory("Gym membership renews monthly")
        results = await memory_service.search_memories_by_text("passport")
        assert [r.content for r in results] == ["Passport expires in 2027"]

class TestInitialization:
    async def test_concurrent_initialize_runs_once(self, memory_db_engine, embedding_client, monkeypatch):
        store = VectorStore(main_db_engine=memory_db_engine)
        calls = []
        original = store.initialize

        async def counting_initialize():
            calls.append(1)
            await asyncio.sleep(0.01)
            await original()

        monkeypatch.setattr(store, "initialize", counting_initialize)
        service = MemoryService(vector_store=store, text_embedding_client=embedding_client)

        await asyncio.gather(*(service.initialize() for _ in range(5)))
        await service.initialize()
        assert len(calls) == 1

    async def test_operations_initialize_lazily(self, memory_db_engine, embedding_client):
        service = MemoryService(vector_store=VectorStore(main_db_engine=memory_db_engine), text_embedding_client=embedding_client)
        assert await service.get_memory_count() == 0
