# mixin settings for external services like db, llm, embeddings, agent defaults
from typing import Optional
from pydantic import BaseModel, Field

class MemoryDBSettingsMixin(BaseModel):
    """
    Model for the memory store's SQLAlchemy connection settings.
    NOTE: defaults to a local SQLite file; point at postgresql+asyncpg to use a pgvector column instead.
    """
    MEMORY_DB_URL: str = Field(default="sqlite+aiosqlite:///./assistant-memory.db", description="Async SQLAlchemy URL for the memory store.")
    MEMORY_DB_POOL_SIZE: int = Field(default=5, description="Number of connections to keep in the pool (ignored for SQLite).")
    MEMORY_DB_MAX_OVERFLOW: int = Field(default=10, description="Max 'overflow' connections beyond pool_size (ignored for SQLite).")
    MEMORY_DB_POOL_TIMEOUT: int = Field(default=30, description="Seconds to wait before giving up on getting a connection.")
    MEMORY_DB_POOL_RECYCLE: int = Field(default=1800, description="Recycle connections after this many seconds.")
    MEMORY_DB_ECHO: bool = Field(default=False, description="Log every SQL statement.")

class OpenAISettingsMixin(BaseModel):
    """
    Model for OpenAI chat + embedding client settings.
    """
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_CHAT_MODEL: str = "gpt-4o"
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-ada-002"

class AnthropicSettingsMixin(BaseModel):
    """
    Model for Anthropic chat client settings.
    """
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_CHAT_MODEL: str = "claude-3-5-sonnet-20241022"

class GrokSettingsMixin(BaseModel):
    """
    Model for Grok (x.ai) chat client settings. Grok speaks the OpenAI API schema.
    """
    GROK_API_KEY: Optional[str] = None
    GROK_CHAT_MODEL: str = "grok-3-beta"
    GROK_BASE_URL: str = "https://api.x.ai/v1"

class GoogleGenAISettingsMixin(BaseModel):
    """
    Model for Google GenAI embedding client settings.
    """
    GOOGLE_GENAI_API_KEY: Optional[str] = None
    GOOGLE_GENAI_EMBEDDING_MODEL: str = "gemini-embedding-001"

class EmbeddingSettingsMixin(BaseModel):
    """
    Which embedder backs the memory store.
    - "openai" / "google_genai" require the matching API key
    - "hashing" is the deterministic offline embedder, also used when no key is configured
    """
    EMBEDDING_PROVIDER: str = "openai"
    EMBEDDING_DIMENSIONS: int = 1536

class CompletionSettingsMixin(BaseModel):
    """
    Shared generation + retry settings for every chat completion provider.
    """
    # explicit provider wins; otherwise the first provider with an API key is picked
    PREFERRED_LLM_PROVIDER: Optional[str] = None
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 2048
    LLM_REQUEST_TIMEOUT_SECONDS: float = 30.0
    LLM_RETRY_ATTEMPTS: int = Field(default=3, description="Total attempts for transient provider failures.")
    LLM_RETRY_INITIAL_WAIT: float = Field(default=0.5, description="First backoff in seconds, doubled per attempt.")
    LLM_RETRY_MAX_WAIT: float = Field(default=4.0, description="Backoff ceiling in seconds.")

class AgentSettingsMixin(BaseModel):
    """
    Defaults for the ReAct agent loop and the permissions granted by the host.
    """
    AGENT_MAX_ITERATIONS: int = 5
    AGENT_TIMEOUT_MS: int = 45000
    AGENT_RETRY_ATTEMPTS: int = 2
    # permission keys the host app has granted, e.g. ["calendar"]
    GRANTED_PERMISSIONS: list[str] = Field(default_factory=list)
