# retrieval-augmented generation over MemoryService + chat completion dispatcher

from contextlib import aclosing
from typing import AsyncIterator, Optional
from pydantic import BaseModel, Field

from ondevice_ai.common.exceptions import CompletionError, EmptyInputError, GenerationError
from ondevice_ai.common.logging.logger import logger
from ondevice_ai.common.services.llm_service.llm_client.dispatcher import ChatCompletionClient
from ondevice_ai.common.services.llm_service.llm_client.protocols import LLMProvider
from ondevice_ai.memory.memory_service import MemoryService
from ondevice_ai.rag.prompts import RagPrompts

class RagAnswer(BaseModel):
    """An answer plus the memory snippets it was grounded on."""
    answer: str
    contexts: list[str] = Field(default_factory=list)
    provider: LLMProvider

class RagService():
    """
    Answers a query by grounding the chat completion in retrieved memories.
    - Retrieval failures degrade to an empty context (availability over grounding).
    - Completion failures surface as GenerationError.
    - Streaming variants are async generators; the consumer pulls fragments and cancels by closing the generator.
    """

    def __init__(self, memory_service: MemoryService, chat_client: ChatCompletionClient):
        self.memory_service = memory_service
        self.chat_client = chat_client

    # =====================================================================
    # Provider selection
    # =====================================================================

    def get_preferred_provider(self) -> LLMProvider:
        return self.chat_client.preferred_provider

    def set_preferred_provider(self, provider: LLMProvider | str) -> None:
        self.chat_client.set_preferred_provider(provider)

    # =====================================================================
    # Retrieval
    # =====================================================================

    async def retrieve_context(self, query: str, context_count: int = 3) -> list[str]:
        """Top memories for the query, or [] if retrieval fails for any reason."""
        try:
            return await self.memory_service.query_memory(query, context_count)
        except EmptyInputError:
            raise
        except Exception as e:
            logger.warning(f"Memory retrieval failed, proceeding without context: {e}")
            return []

    async def _build_prompt(
        self,
        query: str,
        base_prompt: Optional[str],
        use_context: bool,
        context_count: int,
    ) -> tuple[str, str, list[str]]:
        """(trimmed query, full system prompt, contexts used)"""
        normalized = (query or "").strip()
        if not normalized:
            raise EmptyInputError("Query must not be empty")

        if not use_context:
            system_prompt = base_prompt if base_prompt is not None else RagPrompts.rag_system_prompt.strip()
            return normalized, system_prompt, []

        contexts = await self.retrieve_context(normalized, context_count)
        logger.info(f"Retrieved {len(contexts)} context snippets for RAG query")
        return normalized, RagPrompts.build_system_prompt(contexts, base_prompt), contexts

    # =====================================================================
    # Answers
    # =====================================================================

    async def answer_with_rag(self, query: str, context_count: int = 3) -> str:
        result = await self.answer_with_sources(query, context_count)
        return result.answer

    async def answer_with_sources(self, query: str, context_count: int = 3) -> RagAnswer:
        """Same as answer_with_rag, but also returns the snippets used and the provider that answered."""
        normalized, system_prompt, contexts = await self._build_prompt(query, None, True, context_count)
        answer = await self._complete(system_prompt, normalized)
        return RagAnswer(answer=answer, contexts=contexts, provider=self.chat_client.preferred_provider)

    async def answer_with_custom_prompt(
        self,
        query: str,
        system_prompt: str,
        use_context: bool = True,
        context_count: int = 3,
    ) -> str:
        normalized, full_prompt, _ = await self._build_prompt(query, system_prompt, use_context, context_count)
        return await self._complete(full_prompt, normalized)

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        try:
            return await self.chat_client.acomplete(system_prompt=system_prompt, user_prompt=user_prompt)
        except CompletionError as e:
            logger.error(f"RAG completion failed with provider {self.chat_client.preferred_provider.value}: {e}")
            raise GenerationError(f"Failed to generate answer: {e}") from e

    # =====================================================================
    # Streaming
    # =====================================================================

    async def stream_with_rag(self, query: str, context_count: int = 3) -> AsyncIterator[str]:
        normalized, system_prompt, _ = await self._build_prompt(query, None, True, context_count)
        async with aclosing(self._stream(system_prompt, normalized)) as fragments:
            async for fragment in fragments:
                yield fragment

    async def stream_with_custom_prompt(
        self,
        query: str,
        system_prompt: Optional[str],
        use_context: bool = True,
        context_count: int = 3,
    ) -> AsyncIterator[str]:
        normalized, full_prompt, _ = await self._build_prompt(query, system_prompt, use_context, context_count)
        async with aclosing(self._stream(full_prompt, normalized)) as fragments:
            async for fragment in fragments:
                yield fragment

    async def _stream(self, system_prompt: str, user_prompt: str) -> AsyncIterator[str]:
        # aclosing propagates an early consumer exit down to the provider stream
        try:
            async with aclosing(self.chat_client.astream(system_prompt=system_prompt, user_prompt=user_prompt)) as stream:
                async for fragment in stream:
                    if fragment:
                        yield fragment
        except CompletionError as e:
            logger.error(f"RAG stream failed with provider {self.chat_client.preferred_provider.value}: {e}")
            raise GenerationError(f"Failed to stream answer: {e}") from e
