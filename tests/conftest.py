# shared fixtures: temporary memory db, offline embedder, scripted chat completer, fake calendar

import asyncio
from datetime import datetime
from typing import AsyncIterator, Optional, Union

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from ondevice_ai.common.exceptions import EmbeddingError
from ondevice_ai.common.services.embedding_service.text_embedding import TypedTextEmbeddingClient, TextEmbeddingProvider
from ondevice_ai.common.services.embedding_service.text_embedding.hashing_embedding_client import HashingTextEmbeddingClient
from ondevice_ai.common.services.llm_service.llm_client import ChatCompletionClient, LLMProvider
from ondevice_ai.agent_service.common.tools.calendar import CalendarEvent
from ondevice_ai.memory.memory_service import MemoryService
from ondevice_ai.memory.vector_store import VectorStore

EMBEDDING_SIZE = 1536

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class CountingEmbedder(HashingTextEmbeddingClient):
    """Hashing embedder that records every batch it is asked to embed."""

    def __init__(self, embedding_size: int = EMBEDDING_SIZE):
        super().__init__(embedding_size=embedding_size)
        self.calls: list[list[str]] = []

    async def aembed_text(self, text: list[str], **kwargs) -> list[list[float]]:
        self.calls.append(list(text))
        return await super().aembed_text(text, **kwargs)

class FailingEmbedder():
    provider = TextEmbeddingProvider.HASHING
    model = "failing"

    async def aembed_text(self, text: list[str], **kwargs) -> list[list[float]]:
        raise EmbeddingError("embedding service unavailable")

ScriptedResponse = Union[str, BaseException]

class ScriptedChatCompleter():
    """
    Chat completer returning canned responses in order.
    - Exceptions in the script are raised instead of returned.
    - Once the script runs out, `default` is returned (or an AssertionError raised if there is none).
    """

    def __init__(
        self,
        responses: Optional[list[ScriptedResponse]] = None,
        *,
        default: Optional[str] = None,
        fragments: Optional[list[ScriptedResponse]] = None,
        delay: float = 0.0,
    ):
        self.responses = list(responses or [])
        self.default = default
        self.fragments = list(fragments or [])
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.stream_closed = False
        self.fragments_sent = 0

    async def acomplete(self, system_prompt: str, user_prompt: str, **kwargs) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.responses:
            response = self.responses.pop(0)
        elif self.default is not None:
            response = self.default
        else:
            raise AssertionError("ScriptedChatCompleter ran out of responses")
        if isinstance(response, BaseException):
            raise response
        return response

    async def astream(self, system_prompt: str, user_prompt: str, **kwargs) -> AsyncIterator[str]:
        self.calls.append((system_prompt, user_prompt))
        try:
            for fragment in self.fragments:
                if isinstance(fragment, BaseException):
                    raise fragment
                self.fragments_sent += 1
                yield fragment
        finally:
            self.stream_closed = True

class FakeCalendarProvider():
    def __init__(self, events: Optional[list[CalendarEvent]] = None):
        self.events = list(events or [])

    async def aget_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        return [event for event in self.events if start <= event.start < end]

    async def acreate_event(self, title, start, end, notes=None, location=None) -> str:
        event_id = f"evt-{len(self.events) + 1}"
        self.events.append(CalendarEvent(id=event_id, title=title, start=start, end=end, notes=notes, location=location))
        return event_id

class FakeClock():
    """Monotonic clock the test advances by hand (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

def make_chat_client(
    completer: ScriptedChatCompleter,
    provider: LLMProvider = LLMProvider.ANTHROPIC,
) -> ChatCompletionClient:
    return ChatCompletionClient(clients={provider: completer}, preferred_provider=provider)

# ---------------------------------------------------------------------------
# Storage + services
# ---------------------------------------------------------------------------

@pytest.fixture
async def memory_db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'memory.db'}")
    yield engine
    await engine.dispose()

@pytest.fixture
async def vector_store(memory_db_engine):
    store = VectorStore(main_db_engine=memory_db_engine)
    await store.initialize()
    return store

@pytest.fixture
def embedder() -> CountingEmbedder:
    return CountingEmbedder()

@pytest.fixture
def embedding_client(embedder) -> TypedTextEmbeddingClient:
    return TypedTextEmbeddingClient(provider=TextEmbeddingProvider.HASHING, client=embedder)

@pytest.fixture
async def memory_service(vector_store, embedding_client):
    service = MemoryService(vector_store=vector_store, text_embedding_client=embedding_client)
    await service.initialize()
    yield service
    await service.close()

@pytest.fixture
def calendar_provider() -> FakeCalendarProvider:
    return FakeCalendarProvider()
