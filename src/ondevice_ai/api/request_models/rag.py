# rag request bodies

from typing import Optional
from pydantic import BaseModel, Field
from ondevice_ai.common.services.llm_service.llm_client import LLMProvider

class RagQueryRequest(BaseModel):
    """
    Request body for a retrieval-grounded answer.
    """
    query: str
    context_count: int = Field(default=3, ge=0)

class CustomPromptRequest(BaseModel):
    """
    Request body for an answer with a caller-supplied system prompt.
    use_context=False skips memory retrieval entirely.
    """
    query: str
    system_prompt: str
    use_context: bool = True
    context_count: int = Field(default=3, ge=0)

class RagStreamRequest(BaseModel):
    """
    Request body for a streamed answer. Without a system prompt the default RAG prompt is used.
    """
    query: str
    system_prompt: Optional[str] = None
    use_context: bool = True
    context_count: int = Field(default=3, ge=0)

class SetProviderRequest(BaseModel):
    provider: LLMProvider
