# protocols for text embedding clients

from typing import Protocol, runtime_checkable
from enum import Enum

class TextEmbeddingProvider(str, Enum):
    """Enumeration of supported text embedding providers."""
    OPENAI = "openai"
    GOOGLE_GENAI = "google_genai"
    HASHING = "hashing" # deterministic, offline

# Ensures that all text embedding clients implement this protocol
class TypedTextEmbeddingProtocol(Protocol):
    async def aembed_text(
        self,
        text: list[str],
        **kwargs
    ) -> list[list[float]]: ...

@runtime_checkable
class ProvidesProviderInfo(Protocol):
    """Optional protocol for exposing provider/model metadata for reporting."""
    provider: TextEmbeddingProvider
    model: str
