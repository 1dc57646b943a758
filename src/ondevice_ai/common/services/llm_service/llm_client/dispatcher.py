# dispatcher for chat completion clients, selects the backend by provider enum (strategy pattern)

from contextlib import aclosing
from typing import AsyncIterator, Mapping
from .protocols import ChatCompleterProtocol, LLMProvider
from ondevice_ai.common.exceptions import CompletionError
from ondevice_ai.common.logging.logger import logger

class ChatCompletionClient:
    """
    Holds one completer per configured provider and forwards calls to the preferred one.
    - Switching providers is a pure in-memory change, applied to subsequent calls only.
    - A preferred provider without a configured completer fails at call time with CompletionError.
    """
    def __init__(self, clients: Mapping[LLMProvider, ChatCompleterProtocol], preferred_provider: LLMProvider):
        self.clients: dict[LLMProvider, ChatCompleterProtocol] = dict(clients)
        self.preferred_provider = LLMProvider(preferred_provider)

    @property
    def available_providers(self) -> list[LLMProvider]:
        return list(self.clients.keys())

    def set_preferred_provider(self, provider: LLMProvider | str) -> None:
        # raises ValueError on unknown provider names
        self.preferred_provider = LLMProvider(provider)
        logger.info(f"Preferred LLM provider set to {self.preferred_provider.value}")

    def _active_client(self) -> ChatCompleterProtocol:
        client = self.clients.get(self.preferred_provider)
        if client is None:
            raise CompletionError(
                f"No chat client configured for provider '{self.preferred_provider.value}'. "
                f"Configured: {[p.value for p in self.clients]}"
            )
        return client

    async def acomplete(
        self,
        system_prompt: str,
        user_prompt: str,
        **kwargs
    ) -> str:
        return await self._active_client().acomplete(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            **kwargs
        )

    async def astream(
        self,
        system_prompt: str,
        user_prompt: str,
        **kwargs
    ) -> AsyncIterator[str]:
        # a missing provider fails on the first pull, before any fragment
        client = self._active_client()
        async with aclosing(client.astream(system_prompt=system_prompt, user_prompt=user_prompt, **kwargs)) as stream:
            async for fragment in stream:
                yield fragment
