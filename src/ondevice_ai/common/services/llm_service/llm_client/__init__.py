# chat completion clients

from ondevice_ai.common.services.llm_service.llm_client.dispatcher import ChatCompletionClient
from ondevice_ai.common.services.llm_service.llm_client.protocols import ChatCompleterProtocol, LLMProvider

# NOTE: only exports the generic wrappers; concrete clients are imported from their modules
__all__ = ["ChatCompletionClient", "ChatCompleterProtocol", "LLMProvider"]
