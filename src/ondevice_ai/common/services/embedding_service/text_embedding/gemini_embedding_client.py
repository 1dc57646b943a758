from typing import List, Optional

from google import genai # officially recommended import path
from google.genai import types
from google.genai import errors as genai_errors
from google.genai.types import ContentEmbedding
# use tenacity to retry when desired
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from ondevice_ai.common.services.embedding_service.text_embedding.protocols import TypedTextEmbeddingProtocol, ProvidesProviderInfo
from ondevice_ai.common.services.embedding_service.text_embedding.protocols import TextEmbeddingProvider
from ondevice_ai.common.exceptions import EmbeddingError, TransientEmbeddingError

class AsyncGenAITextEmbeddingClient(TypedTextEmbeddingProtocol, ProvidesProviderInfo):
    """
    Google GenAI Embedding Client, an alternative to OpenAI embeddings.
    """
    def __init__(
        self,
        model_name: str = "gemini-embedding-001",
        content_type: str = "RETRIEVAL_DOCUMENT", # memories are stored documents
        embedding_size: int = 1536, # match the OpenAI dimensionality so stores stay portable
        *,
        api_key: str | None = None,
        retry_attempts: int = 3,
        retry_wait: float = 0.5,
        retry_max_wait: float = 4.0,
    ):
        self.client = genai.Client(api_key=api_key)
        self.model_name = model_name
        self.content_type = content_type
        self.embedding_size = embedding_size
        # Provider metadata for reporting
        self.provider = TextEmbeddingProvider.GOOGLE_GENAI
        self.model = model_name
        self.retryer = AsyncRetrying(
            stop=stop_after_attempt(retry_attempts),
            wait=wait_exponential(multiplier=retry_wait, max=retry_max_wait),
            retry=retry_if_exception_type(TransientEmbeddingError),
            reraise=True,
        )

    async def aembed_text(self, text: list[str], task_type: Optional[str] = None) -> list[list[float]]:
        """
        Converts list of text strings into embedding vectors.

        Args:
            text: List of text strings to embed.
            task_type: Optional override for the embedding task type (e.g. RETRIEVAL_QUERY), falls back to content_type.
        """
        resolved_task_type = task_type or self.content_type
        attempt_count = 0

        async for attempt in self.retryer:
            attempt_count += 1
            with attempt:
                try:
                    result = await self.client.aio.models.embed_content(
                        model=self.model,
                        contents=text, # type: ignore[arg-type] # GenAI SDK accepts list[str] at runtime
                        config=types.EmbedContentConfig(task_type=resolved_task_type, output_dimensionality=self.embedding_size),
                    )
                except genai_errors.ServerError as e:
                    raise TransientEmbeddingError(f"gemini embeddings transient failure: {e}") from e
                except genai_errors.APIError as e:
                    # 429 is reported as a client error by the SDK but is worth retrying
                    if getattr(e, "code", None) == 429:
                        raise TransientEmbeddingError(f"gemini embeddings rate limited: {e}") from e
                    raise EmbeddingError(f"gemini embeddings request failed: {e}") from e

                embeddings: List[ContentEmbedding] | None = result.embeddings if result else None
                if embeddings:
                    return [
                        embedding.values
                        for embedding in embeddings
                        if embedding is not None and embedding.values is not None
                    ]
                raise EmbeddingError("No embeddings returned from API")

        raise RuntimeError(f"aembed_text() reached unexpected fallthrough after {attempt_count} attempts")
