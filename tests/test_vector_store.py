# tests for the persistent vector store

import importlib
import math
from datetime import timezone

import pytest

from ondevice_ai.common.exceptions import DimensionMismatchError
from ondevice_ai.memory.vector_store import VectorStore, cosine_similarity

class TestInsertAndDelete:
    async def test_same_content_twice_gets_distinct_ids(self, vector_store):
        first = await vector_store.add("duplicate", [1.0, 0.0, 0.0])
        second = await vector_store.add("duplicate", [1.0, 0.0, 0.0])

        assert first != second
        assert await vector_store.delete(first) is True
        remaining = await vector_store.get(second)
        assert remaining is not None
        assert remaining.content == "duplicate"
        assert await vector_store.count() == 1

    async def test_delete_missing_id_returns_false(self, vector_store):
        assert await vector_store.delete(9999) is False

    async def test_ids_are_not_reused_after_delete(self, vector_store):
        first = await vector_store.add("a", [1.0, 0.0])
        await vector_store.delete(first)
        second = await vector_store.add("b", [1.0, 0.0])
        assert second > first

    async def test_metadata_and_timestamp_round_trip(self, vector_store):
        memory_id = await vector_store.add("tagged", [0.0, 1.0], {"source": "chat", "priority": 2})
        record = await vector_store.get(memory_id)

        assert record.metadata == {"source": "chat", "priority": 2}
        assert record.embedding == [0.0, 1.0]
        assert record.timestamp.tzinfo is not None
        assert record.timestamp.utcoffset() == timezone.utc.utcoffset(None)

class TestDimensionality:
    async def test_first_insert_fixes_dimension(self, vector_store):
        assert vector_store.dimension is None
        await vector_store.add("three", [1.0, 2.0, 3.0])
        assert vector_store.dimension == 3

        with pytest.raises(DimensionMismatchError) as exc_info:
            await vector_store.add("two", [1.0, 2.0])
        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 2

    async def test_query_with_wrong_dimension_fails(self, vector_store):
        await vector_store.add("three", [1.0, 2.0, 3.0])
        with pytest.raises(DimensionMismatchError):
            await vector_store.query([1.0, 2.0], k=1)

    async def test_dimension_is_recovered_after_restart(self, memory_db_engine, vector_store):
        await vector_store.add("persisted", [1.0, 0.0, 0.0, 0.0])

        reopened = VectorStore(main_db_engine=memory_db_engine)
        await reopened.initialize()
        assert reopened.dimension == 4
        with pytest.raises(DimensionMismatchError):
            await reopened.add("wrong", [1.0, 0.0])

    async def test_failed_first_insert_leaves_dimension_open(self, vector_store, monkeypatch):
        async def broken_save(**kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr("ondevice_ai.memory.vector_store.save_memory_record", broken_save)
        with pytest.raises(RuntimeError):
            await vector_store.add("lost", [1.0, 0.0, 0.0])
        assert vector_store.dimension is None

        monkeypatch.undo()
        await vector_store.add("kept", [1.0, 0.0])
        assert vector_store.dimension == 2

class TestQuery:
    @pytest.mark.parametrize("k", [0, -1, -10])
    async def test_non_positive_k_returns_empty(self, vector_store, k):
        await vector_store.add("something", [1.0, 0.0])
        assert await vector_store.query([1.0, 0.0], k=k) == []

    async def test_empty_store_returns_empty(self, vector_store):
        assert await vector_store.query([1.0, 0.0], k=5) == []

    async def test_results_ranked_by_descending_cosine(self, vector_store):
        await vector_store.add("opposite", [-1.0, 0.0])
        await vector_store.add("orthogonal", [0.0, 1.0])
        await vector_store.add("diagonal", [1.0, 1.0])
        await vector_store.add("aligned", [1.0, 0.0])

        results = await vector_store.query([1.0, 0.0], k=3)

        assert [record.content for record, _ in results] == ["aligned", "diagonal", "orthogonal"]
        scores = [score for _, score in results]
        assert scores[0] == pytest.approx(1.0)
        assert scores[1] == pytest.approx(1 / math.sqrt(2))
        assert scores[2] == pytest.approx(0.0)

    async def test_ties_prefer_most_recent(self, vector_store):
        oldest = await vector_store.add("oldest", [1.0, 0.0])
        middle = await vector_store.add("middle", [2.0, 0.0])
        newest = await vector_store.add("newest", [1.0, 0.0])

        results = await vector_store.query([1.0, 0.0], k=3)
        assert [record.id for record, _ in results] == [newest, middle, oldest]

    async def test_k_larger_than_store_returns_everything(self, vector_store):
        await vector_store.add("a", [1.0, 0.0])
        await vector_store.add("b", [0.0, 1.0])
        assert len(await vector_store.query([1.0, 1.0], k=10)) == 2

    async def test_zero_norm_vectors_are_excluded(self, vector_store):
        await vector_store.add("degenerate", [0.0, 0.0])
        await vector_store.add("real", [0.0, 1.0])

        results = await vector_store.query([0.0, 1.0], k=5)
        assert [record.content for record, _ in results] == ["real"]

    async def test_zero_norm_query_returns_empty(self, vector_store):
        await vector_store.add("real", [0.0, 1.0])
        assert await vector_store.query([0.0, 0.0], k=5) == []

    async def test_score_invariant_to_positive_scaling(self, vector_store):
        await vector_store.add("target", [0.3, -1.2, 2.5])

        [(_, base_score)] = await vector_store.query([1.0, 0.5, 0.25], k=1)
        [(_, scaled_score)] = await vector_store.query([2.0, 1.0, 0.5], k=1)
        assert scaled_score == pytest.approx(base_score)

class TestBrowsing:
    async def test_list_is_newest_first_and_paginated(self, vector_store):
        for i in range(5):
            await vector_store.add(f"memory {i}", [1.0, float(i)])

        first_page = await vector_store.list_records(limit=2, offset=0)
        second_page = await vector_store.list_records(limit=2, offset=2)

        assert [r.content for r in first_page] == ["memory 4", "memory 3"]
        assert [r.content for r in second_page] == ["memory 2", "memory 1"]
        assert await vector_store.count() == 5

    async def test_search_text_is_case_insensitive_substring(self, vector_store):
        await vector_store.add("Dentist appointment on Friday", [1.0, 0.0])
        await vector_store.add("Grocery list: apples", [0.0, 1.0])

        results = await vector_store.search_text("DENTIST")
        assert [r.content for r in results] == ["Dentist appointment on Friday"]

    async def test_search_text_treats_wildcards_literally(self, vector_store):
        await vector_store.add("100% done", [1.0, 0.0])
        await vector_store.add("1000 done", [0.0, 1.0])

        results = await vector_store.search_text("100%")
        assert [r.content for r in results] == ["100% done"]

class TestCosineSimilarity:
    def test_scaling_either_vector_keeps_score(self):
        a, b = [1.0, 2.0, 3.0], [-0.5, 4.0, 1.0]
        base = cosine_similarity(a, b)
        assert cosine_similarity([2.0 * v for v in a], b) == pytest.approx(base)
        assert cosine_similarity(a, [3.5 * v for v in b]) == pytest.approx(base)

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

class TestModule:
    def test_class_annotations_use_builtin_list(self):
        module = importlib.import_module("ondevice_ai.memory.vector_store")
        assert not hasattr(module.VectorStore, "list")
        assert module.VectorStore.search_text.__annotations__["return"] == list[module.MemoryRecord]
