# builders for the external-capability clients, driven by ServiceSettings

from typing import Optional

from ondevice_ai.common.logging.logger import logger
from ondevice_ai.common.services.embedding_service.text_embedding import TypedTextEmbeddingClient, TextEmbeddingProvider
from ondevice_ai.common.services.embedding_service.text_embedding.hashing_embedding_client import HashingTextEmbeddingClient
from ondevice_ai.common.services.embedding_service.text_embedding.openai_embedding_client import AsyncOpenAITextEmbeddingClient
from ondevice_ai.common.services.embedding_service.text_embedding.gemini_embedding_client import AsyncGenAITextEmbeddingClient
from ondevice_ai.common.services.llm_service.llm_client import ChatCompletionClient, ChatCompleterProtocol, LLMProvider
from ondevice_ai.common.services.llm_service.llm_client.openai_chat_client import AsyncOpenAIChatClient
from ondevice_ai.common.services.llm_service.llm_client.anthropic_chat_client import AsyncAnthropicChatClient
from ondevice_ai.common.services.llm_service.llm_client.grok_chat_client import AsyncGrokChatClient

# provider preference when none is configured explicitly
PROVIDER_FALLBACK_ORDER = (LLMProvider.OPENAI, LLMProvider.ANTHROPIC, LLMProvider.GROK)

def _provider_api_key(settings, provider: LLMProvider) -> Optional[str]:
    return {
        LLMProvider.OPENAI: settings.OPENAI_API_KEY,
        LLMProvider.ANTHROPIC: settings.ANTHROPIC_API_KEY,
        LLMProvider.GROK: settings.GROK_API_KEY,
    }[provider]

def resolve_preferred_provider(settings) -> LLMProvider:
    """
    Explicit PREFERRED_LLM_PROVIDER wins; otherwise the first provider with an API key
    (openai -> anthropic -> grok); otherwise anthropic.
    """
    if settings.PREFERRED_LLM_PROVIDER:
        return LLMProvider(settings.PREFERRED_LLM_PROVIDER.lower())
    for provider in PROVIDER_FALLBACK_ORDER:
        if _provider_api_key(settings, provider):
            return provider
    return LLMProvider.ANTHROPIC

def build_chat_completion_client(settings) -> ChatCompletionClient:
    """One completer per provider that has an API key, behind the provider dispatcher."""
    shared_kwargs = dict(
        temperature=settings.LLM_TEMPERATURE,
        max_tokens=settings.LLM_MAX_TOKENS,
        timeout=settings.LLM_REQUEST_TIMEOUT_SECONDS,
        retry_attempts=settings.LLM_RETRY_ATTEMPTS,
        retry_wait=settings.LLM_RETRY_INITIAL_WAIT,
        retry_max_wait=settings.LLM_RETRY_MAX_WAIT,
    )
    clients: dict[LLMProvider, ChatCompleterProtocol] = {}
    if settings.OPENAI_API_KEY:
        clients[LLMProvider.OPENAI] = AsyncOpenAIChatClient(
            settings.OPENAI_CHAT_MODEL, api_key=settings.OPENAI_API_KEY, **shared_kwargs
        )
    if settings.ANTHROPIC_API_KEY:
        clients[LLMProvider.ANTHROPIC] = AsyncAnthropicChatClient(
            settings.ANTHROPIC_CHAT_MODEL, api_key=settings.ANTHROPIC_API_KEY, **shared_kwargs
        )
    if settings.GROK_API_KEY:
        clients[LLMProvider.GROK] = AsyncGrokChatClient(
            settings.GROK_CHAT_MODEL, api_key=settings.GROK_API_KEY, base_url=settings.GROK_BASE_URL, **shared_kwargs
        )

    preferred = resolve_preferred_provider(settings)
    if not clients:
        logger.warning("No LLM API keys configured; RAG and agent calls will fail until one is set.")
    logger.info(f"Chat clients configured: {[p.value for p in clients]}, preferred: {preferred.value}")
    return ChatCompletionClient(clients=clients, preferred_provider=preferred)

def build_text_embedding_client(settings) -> TypedTextEmbeddingClient:
    """
    Embedder for the memory store. Falls back to the offline hashing embedder
    when the configured provider has no API key.
    """
    provider = TextEmbeddingProvider(settings.EMBEDDING_PROVIDER.lower())
    retry_kwargs = dict(
        retry_attempts=settings.LLM_RETRY_ATTEMPTS,
        retry_wait=settings.LLM_RETRY_INITIAL_WAIT,
        retry_max_wait=settings.LLM_RETRY_MAX_WAIT,
    )

    if provider == TextEmbeddingProvider.OPENAI and settings.OPENAI_API_KEY:
        client = AsyncOpenAITextEmbeddingClient(
            settings.OPENAI_EMBEDDING_MODEL,
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.LLM_REQUEST_TIMEOUT_SECONDS,
            **retry_kwargs,
        )
        return TypedTextEmbeddingClient(provider=TextEmbeddingProvider.OPENAI, client=client)

    if provider == TextEmbeddingProvider.GOOGLE_GENAI and settings.GOOGLE_GENAI_API_KEY:
        client = AsyncGenAITextEmbeddingClient(
            settings.GOOGLE_GENAI_EMBEDDING_MODEL,
            embedding_size=settings.EMBEDDING_DIMENSIONS,
            api_key=settings.GOOGLE_GENAI_API_KEY,
            **retry_kwargs,
        )
        return TypedTextEmbeddingClient(provider=TextEmbeddingProvider.GOOGLE_GENAI, client=client)

    if provider != TextEmbeddingProvider.HASHING:
        logger.warning(f"No API key for embedding provider '{provider.value}', using the local hashing embedder.")
    return TypedTextEmbeddingClient(
        provider=TextEmbeddingProvider.HASHING,
        client=HashingTextEmbeddingClient(embedding_size=settings.EMBEDDING_DIMENSIONS),
    )
