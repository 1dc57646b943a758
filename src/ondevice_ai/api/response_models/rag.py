# rag response models

from pydantic import BaseModel, Field
from ondevice_ai.common.services.llm_service.llm_client import LLMProvider

class RagAnswerResponse(BaseModel):
    answer: str
    provider: LLMProvider
    contexts: list[str] = Field(default_factory=list)

class ProviderResponse(BaseModel):
    preferred_provider: LLMProvider
    available_providers: list[LLMProvider]
