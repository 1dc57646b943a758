# protocols for chat completion clients

from typing import AsyncIterator, Protocol, runtime_checkable
from enum import Enum

class LLMProvider(str, Enum):
    """Enumeration of supported chat completion providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROK = "grok"

# Ensures that all chat completion clients implement this protocol
class ChatCompleterProtocol(Protocol):
    async def acomplete(
        self,
        system_prompt: str,
        user_prompt: str,
        **kwargs
    ) -> str: ...

    def astream(
        self,
        system_prompt: str,
        user_prompt: str,
        **kwargs
    ) -> AsyncIterator[str]: ...

@runtime_checkable
class ProvidesProviderInfo(Protocol):
    """Optional protocol for exposing provider/model metadata for reporting."""
    provider: LLMProvider
    model: str
