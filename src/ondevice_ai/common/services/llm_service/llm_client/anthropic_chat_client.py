# Anthropic chat client via the official async SDK

from typing import AsyncIterator

import anthropic
from anthropic import AsyncAnthropic
# use tenacity to retry when desired
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from .protocols import ChatCompleterProtocol, ProvidesProviderInfo, LLMProvider
from ondevice_ai.common.exceptions import CompletionError, TransientCompletionError
from ondevice_ai.common.logging.logger import logger

_TRANSIENT_ANTHROPIC_ERRORS = (
    anthropic.RateLimitError,
    anthropic.APIConnectionError, # includes APITimeoutError
    anthropic.InternalServerError,
)

class AsyncAnthropicChatClient(ChatCompleterProtocol, ProvidesProviderInfo):
    def __init__(
        self,
        model_name: str = "claude-3-5-sonnet-20241022",
        *,
        api_key: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_wait: float = 0.5,
        retry_max_wait: float = 4.0,
    ):
        # NOTE: SDK-level retries are disabled so the tenacity policy below is the only one in effect
        self.client = AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        # Provider metadata for reporting
        self.provider = LLMProvider.ANTHROPIC
        self.model = model_name
        self.retryer = AsyncRetrying(
            stop=stop_after_attempt(retry_attempts),
            wait=wait_exponential(multiplier=retry_wait, max=retry_max_wait),
            retry=retry_if_exception_type(TransientCompletionError),
            reraise=True,
        )

    def _wrap_error(self, e: Exception) -> CompletionError:
        if isinstance(e, _TRANSIENT_ANTHROPIC_ERRORS):
            return TransientCompletionError(f"anthropic transient failure: {e}")
        return CompletionError(f"anthropic request failed: {e}")

    def _request_kwargs(self, system_prompt: str, user_prompt: str, kwargs: dict) -> dict:
        request = {
            "model": self.model_name,
            "max_tokens": kwargs.pop("max_tokens", self.max_tokens),
            "temperature": kwargs.pop("temperature", self.temperature),
            "messages": [{"role": "user", "content": user_prompt}],
            **kwargs,
        }
        # anthropic rejects an empty system string, so only send it when present
        if system_prompt:
            request["system"] = system_prompt
        return request

    async def acomplete(
        self,
        system_prompt: str,
        user_prompt: str,
        **kwargs,
    ) -> str:
        """
        Single-shot message call, returns the concatenated text blocks.
        """
        attempt_count = 0

        async for attempt in self.retryer:
            attempt_count += 1
            with attempt:
                try:
                    resp = await self.client.messages.create(**self._request_kwargs(system_prompt, user_prompt, dict(kwargs)))
                except anthropic.AnthropicError as e:
                    logger.warning(f"[anthropic] attempt {attempt_count} failed: {e}")
                    raise self._wrap_error(e) from e

                texts = [block.text for block in resp.content if getattr(block, "type", None) == "text"]
                text = "\n".join(texts)
                if text.strip():
                    return text
                raise CompletionError("Invalid response format from Anthropic API: no text content")

        raise RuntimeError(f"acomplete() reached unexpected fallthrough after {attempt_count} attempts")

    async def astream(
        self,
        system_prompt: str,
        user_prompt: str,
        **kwargs,
    ) -> AsyncIterator[str]:
        try:
            async with self.client.messages.stream(**self._request_kwargs(system_prompt, user_prompt, dict(kwargs))) as stream:
                async for fragment in stream.text_stream:
                    if fragment:
                        yield fragment
        except anthropic.AnthropicError as e:
            raise self._wrap_error(e) from e
