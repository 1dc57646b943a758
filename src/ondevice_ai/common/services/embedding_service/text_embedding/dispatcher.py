# dispatcher for text embedding clients, wraps any provider behind single + batch helpers

from ondevice_ai.common.services.embedding_service.text_embedding.protocols import TypedTextEmbeddingProtocol, TextEmbeddingProvider
from ondevice_ai.common.exceptions import EmbeddingError

# providers reject very long inputs
MAX_EMBEDDING_INPUT_CHARS = 8000

class TypedTextEmbeddingClient:
    def __init__(self, provider: TextEmbeddingProvider, client: TypedTextEmbeddingProtocol):
        self.provider = provider
        self.client = client

    async def aembed_text(
        self,
        text: list[str],
        **kwargs
    ) -> list[list[float]]:
        return await self.client.aembed_text(
            text=text,
            **kwargs
        )

    async def aembed(self, text: str, **kwargs) -> list[float]:
        """Embed a single text. Fails with EmbeddingError if the provider returns nothing."""
        vectors = await self.aembed_batch([text], **kwargs)
        return vectors[0]

    async def aembed_batch(self, texts: list[str], **kwargs) -> list[list[float]]:
        """
        Embed many texts in one provider call.
        - Inputs are trimmed and clipped to MAX_EMBEDDING_INPUT_CHARS.
        - The result is guaranteed to line up 1:1 with the inputs.
        """
        if not texts:
            return []
        cleaned = [t.strip()[:MAX_EMBEDDING_INPUT_CHARS] for t in texts]
        if any(not t for t in cleaned):
            raise EmbeddingError("Cannot embed empty text")

        vectors = await self.aembed_text(cleaned, **kwargs)
        if len(vectors) != len(cleaned):
            raise EmbeddingError(
                f"{self.provider.value} returned {len(vectors)} embeddings for {len(cleaned)} inputs"
            )
        return [[float(v) for v in vector] for vector in vectors]
