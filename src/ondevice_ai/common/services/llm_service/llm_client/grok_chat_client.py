# Grok (x.ai) client
# Grok uses OpenAI's API schema, so this only swaps the base url, model and provider tag

from .openai_chat_client import AsyncOpenAIChatClient
from .protocols import LLMProvider

GROK_BASE_URL = "https://api.x.ai/v1"

class AsyncGrokChatClient(AsyncOpenAIChatClient):
    def __init__(
        self,
        model_name: str = "grok-3-beta",
        *,
        api_key: str | None = None,
        base_url: str = GROK_BASE_URL, # Grok-compatible base url
        **kwargs,
    ):
        super().__init__(model_name, api_key=api_key, base_url=base_url, **kwargs)
        # Provider metadata for reporting
        self.provider = LLMProvider.GROK
