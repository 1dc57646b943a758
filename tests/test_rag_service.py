# tests for retrieval-augmented answers

import pytest

from ondevice_ai.common.exceptions import CompletionError, EmbeddingError, EmptyInputError, GenerationError
from ondevice_ai.common.services.llm_service.llm_client import ChatCompletionClient, LLMProvider
from ondevice_ai.rag.prompts import RagPrompts
from ondevice_ai.rag.rag_service import RagService

from conftest import ScriptedChatCompleter, make_chat_client

@pytest.fixture
def completer() -> ScriptedChatCompleter:
    return ScriptedChatCompleter(default="A grounded answer.")

@pytest.fixture
def rag_service(memory_service, completer) -> RagService:
    return RagService(memory_service=memory_service, chat_client=make_chat_client(completer))

class TestAnswerWithRag:
    async def test_empty_store_still_answers(self, rag_service, completer):
        answer = await rag_service.answer_with_rag("What is my favorite color?")

        assert answer == "A grounded answer."
        system_prompt, user_prompt = completer.calls[0]
        assert RagPrompts.no_context_notice in system_prompt
        assert user_prompt == "What is my favorite color?"

    async def test_snippets_are_placed_in_system_prompt(self, rag_service, memory_service, completer):
        await memory_service.add_memory("The user's favorite color is teal")
        await memory_service.add_memory("The user owns a grey cat named Miso")

        result = await rag_service.answer_with_sources("What is the user's favorite color?", context_count=1)

        system_prompt, _ = completer.calls[0]
        assert "The user's favorite color is teal" in system_prompt
        assert "Miso" not in system_prompt
        assert "say so explicitly" in system_prompt
        assert result.contexts == ["The user's favorite color is teal"]
        assert result.provider == LLMProvider.ANTHROPIC

    async def test_retrieval_failure_degrades_to_empty_context(self, rag_service, memory_service, completer, monkeypatch):
        async def broken_query(query, k=5):
            raise EmbeddingError("embeddings down")

        monkeypatch.setattr(memory_service, "query_memory", broken_query)
        answer = await rag_service.answer_with_rag("Anything?")

        assert answer == "A grounded answer."
        assert RagPrompts.no_context_notice in completer.calls[0][0]

    async def test_completion_failure_becomes_generation_error(self, memory_service):
        failing = ScriptedChatCompleter([CompletionError("rate limited")])
        service = RagService(memory_service=memory_service, chat_client=make_chat_client(failing))

        with pytest.raises(GenerationError) as exc_info:
            await service.answer_with_rag("Will this work?")
        assert isinstance(exc_info.value.__cause__, CompletionError)

    async def test_empty_query_rejected(self, rag_service, completer):
        with pytest.raises(EmptyInputError):
            await rag_service.answer_with_rag("  ")
        assert completer.calls == []

class TestCustomPrompt:
    async def test_without_context_skips_retrieval(self, rag_service, memory_service, completer, monkeypatch):
        async def must_not_query(query, k=5):
            raise AssertionError("retrieval should be skipped")

        monkeypatch.setattr(memory_service, "query_memory", must_not_query)
        await rag_service.answer_with_custom_prompt("Tell me a joke", "You are a comedian.", use_context=False)

        assert completer.calls[0] == ("You are a comedian.", "Tell me a joke")

    async def test_with_context_appends_snippets(self, rag_service, memory_service, completer):
        await memory_service.add_memory("The user is allergic to peanuts")
        await rag_service.answer_with_custom_prompt("Suggest a snack for the user", "You are a nutritionist.")

        system_prompt = completer.calls[0][0]
        assert system_prompt.startswith("You are a nutritionist.")
        assert "allergic to peanuts" in system_prompt

class TestProviderSelection:
    async def test_switching_provider_routes_subsequent_calls(self, memory_service):
        anthropic = ScriptedChatCompleter(default="from anthropic")
        grok = ScriptedChatCompleter(default="from grok")
        chat_client = ChatCompletionClient(
            clients={LLMProvider.ANTHROPIC: anthropic, LLMProvider.GROK: grok},
            preferred_provider=LLMProvider.ANTHROPIC,
        )
        service = RagService(memory_service=memory_service, chat_client=chat_client)

        assert await service.answer_with_rag("hello") == "from anthropic"
        service.set_preferred_provider(LLMProvider.GROK)
        assert service.get_preferred_provider() == LLMProvider.GROK
        assert await service.answer_with_rag("hello") == "from grok"
        assert len(anthropic.calls) == 1

    async def test_unconfigured_provider_fails_at_call_time(self, rag_service):
        rag_service.set_preferred_provider("openai")
        with pytest.raises(GenerationError):
            await rag_service.answer_with_rag("hello")

    def test_unknown_provider_name_rejected(self, rag_service):
        with pytest.raises(ValueError):
            rag_service.set_preferred_provider("mistral")

class TestStreaming:
    async def test_fragments_arrive_in_order(self, memory_service):
        completer = ScriptedChatCompleter(fragments=["The ", "answer ", "", "is 42."])
        service = RagService(memory_service=memory_service, chat_client=make_chat_client(completer))

        fragments = [fragment async for fragment in service.stream_with_rag("What is the answer?")]
        assert fragments == ["The ", "answer ", "is 42."]
        assert completer.stream_closed

    async def test_consumer_can_stop_early(self, memory_service):
        completer = ScriptedChatCompleter(fragments=["one ", "two ", "three ", "four"])
        service = RagService(memory_service=memory_service, chat_client=make_chat_client(completer))

        stream = service.stream_with_rag("count")
        received = []
        async for fragment in stream:
            received.append(fragment)
            if len(received) == 2:
                break
        await stream.aclose()

        assert received == ["one ", "two "]
        assert completer.fragments_sent == 2
        assert completer.stream_closed

    async def test_stream_failure_becomes_generation_error(self, memory_service):
        completer = ScriptedChatCompleter(fragments=["partial ", CompletionError("connection reset")])
        service = RagService(memory_service=memory_service, chat_client=make_chat_client(completer))

        received = []
        with pytest.raises(GenerationError):
            async for fragment in service.stream_with_custom_prompt("q", "Be brief.", use_context=False):
                received.append(fragment)
        assert received == ["partial "]

    async def test_empty_query_rejected_on_first_pull(self, rag_service):
        with pytest.raises(EmptyInputError):
            await rag_service.stream_with_rag("").__anext__()
