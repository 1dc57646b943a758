# OpenAI text embedding client

from typing import Optional

import openai
from openai import AsyncOpenAI
# use tenacity to retry when desired
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from ondevice_ai.common.services.embedding_service.text_embedding.protocols import TypedTextEmbeddingProtocol, ProvidesProviderInfo
from ondevice_ai.common.services.embedding_service.text_embedding.protocols import TextEmbeddingProvider
from ondevice_ai.common.exceptions import EmbeddingError, TransientEmbeddingError
from ondevice_ai.common.logging.logger import logger

_TRANSIENT_OPENAI_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.InternalServerError,
)

class AsyncOpenAITextEmbeddingClient(TypedTextEmbeddingProtocol, ProvidesProviderInfo):
    """
    Core OpenAI Embedding Client.
    """
    def __init__(
        self,
        model_name: str = "text-embedding-ada-002", # 1536 dims
        embedding_size: Optional[int] = None, # only honored by text-embedding-3-* models
        *,
        api_key: str | None = None,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_wait: float = 0.5,
        retry_max_wait: float = 4.0,
    ):
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model_name = model_name
        self.embedding_size = embedding_size
        # Provider metadata for reporting
        self.provider = TextEmbeddingProvider.OPENAI
        self.model = model_name
        self.retryer = AsyncRetrying(
            stop=stop_after_attempt(retry_attempts),
            wait=wait_exponential(multiplier=retry_wait, max=retry_max_wait),
            retry=retry_if_exception_type(TransientEmbeddingError),
            reraise=True,
        )

    async def aembed_text(self, text: list[str], **kwargs) -> list[list[float]]:
        """
        Converts list of text strings into embedding vectors, one per input, in input order.
        """
        request = {"model": self.model_name, "input": text, "encoding_format": "float"}
        if self.embedding_size is not None:
            request["dimensions"] = self.embedding_size
        attempt_count = 0

        async for attempt in self.retryer:
            attempt_count += 1
            with attempt:
                try:
                    result = await self.client.embeddings.create(**request, **kwargs)
                except _TRANSIENT_OPENAI_ERRORS as e:
                    logger.warning(f"[openai-embeddings] attempt {attempt_count} failed: {e}")
                    raise TransientEmbeddingError(f"openai embeddings transient failure: {e}") from e
                except openai.OpenAIError as e:
                    raise EmbeddingError(f"openai embeddings request failed: {e}") from e

                # API may return items out of order, index is authoritative
                items = sorted(result.data, key=lambda item: item.index)
                embeddings = [item.embedding for item in items if item.embedding]
                if embeddings:
                    return embeddings
                raise EmbeddingError("Invalid embedding response from OpenAI API")

        raise RuntimeError(f"aembed_text() reached unexpected fallthrough after {attempt_count} attempts")
