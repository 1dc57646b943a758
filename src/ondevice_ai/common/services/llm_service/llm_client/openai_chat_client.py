# The core async set up for OpenAI's chat completion API
# NOTE: also the base for OpenAI-compatible providers (e.g. Grok), which only swap base url + model

from typing import AsyncIterator, Optional

import openai
from openai import AsyncOpenAI
# use tenacity to retry when desired
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from .protocols import ChatCompleterProtocol, ProvidesProviderInfo, LLMProvider
from ondevice_ai.common.exceptions import CompletionError, TransientCompletionError
from ondevice_ai.common.logging.logger import logger

# failures worth another attempt; everything else (auth, bad request) fails fast
_TRANSIENT_OPENAI_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError, # includes APITimeoutError
    openai.InternalServerError,
)

class AsyncOpenAIChatClient(ChatCompleterProtocol, ProvidesProviderInfo):
    def __init__(
        self,
        model_name: str = "gpt-4o",
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_wait: float = 0.5,
        retry_max_wait: float = 4.0,
    ):
        # Create shared client in __init__ for FastAPI (ASGI), enables connection pooling
        # NOTE: SDK-level retries are disabled so the tenacity policy below is the only one in effect
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        # Provider metadata for reporting
        self.provider = LLMProvider.OPENAI
        self.model = model_name
        self.retryer = AsyncRetrying(
            stop=stop_after_attempt(retry_attempts),
            wait=wait_exponential(multiplier=retry_wait, max=retry_max_wait),
            retry=retry_if_exception_type(TransientCompletionError), # only retry rate limits / network / 5xx
            reraise=True,
        )

    def _build_messages(self, system_prompt: str, user_prompt: str) -> list[dict]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        return messages

    def _wrap_error(self, e: Exception) -> CompletionError:
        """Map SDK exceptions onto the provider-agnostic completion errors."""
        if isinstance(e, _TRANSIENT_OPENAI_ERRORS):
            return TransientCompletionError(f"{self.provider.value} transient failure: {e}")
        return CompletionError(f"{self.provider.value} request failed: {e}")

    async def acomplete(
        self,
        system_prompt: str,
        user_prompt: str,
        **kwargs,
    ) -> str:
        """
        Single-shot chat completion, returns the message text.
        Retries transient failures with exponential backoff, then re-raises as CompletionError.
        """
        attempt_count = 0

        async for attempt in self.retryer:
            attempt_count += 1
            with attempt: # let tenacity see context of each attempt instead of swallowing until the last
                call_kwargs = dict(kwargs)
                try:
                    resp = await self.client.chat.completions.create(
                        model=self.model_name,
                        messages=self._build_messages(system_prompt, user_prompt), # type: ignore[arg-type]
                        temperature=call_kwargs.pop("temperature", self.temperature),
                        max_tokens=call_kwargs.pop("max_tokens", self.max_tokens),
                        **call_kwargs,
                    )
                except openai.OpenAIError as e:
                    logger.warning(f"[{self.provider.value}] attempt {attempt_count} failed: {e}")
                    raise self._wrap_error(e) from e

                content: Optional[str] = resp.choices[0].message.content if resp.choices else None
                if isinstance(content, str) and content.strip():
                    return content
                raise CompletionError(f"No content found in {self.provider.value} response")

        # NOTE: only reachable if the retryer was misconfigured to run zero attempts
        raise RuntimeError(f"acomplete() reached unexpected fallthrough after {attempt_count} attempts")

    async def astream(
        self,
        system_prompt: str,
        user_prompt: str,
        **kwargs,
    ) -> AsyncIterator[str]:
        """
        Streams text fragments as they arrive. Not retried, a broken stream surfaces as CompletionError.
        """
        try:
            stream = await self.client.chat.completions.create(
                model=self.model_name,
                messages=self._build_messages(system_prompt, user_prompt), # type: ignore[arg-type]
                temperature=kwargs.pop("temperature", self.temperature),
                max_tokens=kwargs.pop("max_tokens", self.max_tokens),
                stream=True,
                **kwargs,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                fragment = chunk.choices[0].delta.content
                if fragment:
                    yield fragment
        except openai.OpenAIError as e:
            raise self._wrap_error(e) from e
