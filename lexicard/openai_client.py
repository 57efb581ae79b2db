"""OpenAI text generator with retry logic and quota detection."""

from typing import AsyncIterator, Dict, List, Optional, Protocol

import openai
import structlog
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .config import MODEL_NAME, OPENAI_API_KEY, REQUEST_TIMEOUT, TEMPERATURE
from .errors import GenerationError, QuotaExceededError

log = structlog.get_logger()

# Substrings some gateways use instead of a proper 429 status
QUOTA_MARKERS = ("429", "RESOURCE_EXHAUSTED", "insufficient_quota", "rate limit")


class TextGenerator(Protocol):
    """Anything that can turn a prompt into text, streamed or in one go."""

    def stream(self, prompt: str) -> AsyncIterator[str]:
        ...

    async def complete(self, prompt: str) -> str:
        ...


def classify_error(exc: BaseException) -> GenerationError:
    """Map a provider exception onto the lexicard error taxonomy."""
    if isinstance(exc, GenerationError):
        return exc
    message = str(exc)
    if isinstance(exc, openai.RateLimitError) or getattr(exc, "status_code", None) == 429:
        return QuotaExceededError(message)
    lowered = message.lower()
    if any(marker.lower() in lowered for marker in QUOTA_MARKERS):
        return QuotaExceededError(message)
    return GenerationError(message)


def create_openai_retry_decorator():
    """Create a retry decorator for transient OpenAI failures.

    Rate limits are not retried: they trip the quota flag instead.
    """
    return retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential_jitter(initial=1, max=10, jitter=1),
        retry=retry_if_exception_type((
            openai.APITimeoutError,
            openai.APIConnectionError,
        )),
    )


class OpenAITextGenerator:
    """TextGenerator backed by the OpenAI chat completions API."""

    def __init__(self, model: str = MODEL_NAME, api_key: Optional[str] = OPENAI_API_KEY,
                 temperature: float = TEMPERATURE, timeout: float = REQUEST_TIMEOUT):
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.timeout = timeout
        self._client: Optional[openai.AsyncOpenAI] = None

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> openai.AsyncOpenAI:
        if not self.api_key:
            raise GenerationError("OPENAI_API_KEY is not configured")
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def _messages(self, prompt: str) -> List[Dict[str, str]]:
        return [{"role": "user", "content": prompt}]

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def complete(self, prompt: str) -> str:
        """Single-shot completion for short lookups."""
        client = self._get_client()

        @create_openai_retry_decorator()
        async def _make_api_call() -> str:
            response = await client.chat.completions.create(
                model=self.model,
                messages=self._messages(prompt),
                temperature=self.temperature,
            )
            return response.choices[0].message.content or ""

        try:
            return await _make_api_call()
        except RetryError as e:
            actual_exception = e.last_attempt.exception()
            log.error("OpenAI API call failed after retries",
                      error=str(actual_exception),
                      model=self.model,
                      attempts=e.last_attempt.attempt_number)
            raise classify_error(actual_exception) from actual_exception
        except openai.OpenAIError as e:
            log.error("OpenAI API call failed", error=str(e), model=self.model)
            raise classify_error(e) from e

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        """Stream completion text chunks as they arrive.

        Only opening the stream is retried; a failure after the first chunk
        surfaces as an error.
        """
        client = self._get_client()

        @create_openai_retry_decorator()
        async def _open_stream():
            return await client.chat.completions.create(
                model=self.model,
                messages=self._messages(prompt),
                temperature=self.temperature,
                stream=True,
            )

        try:
            response = await _open_stream()
        except RetryError as e:
            actual_exception = e.last_attempt.exception()
            log.error("OpenAI stream failed to open after retries",
                      error=str(actual_exception),
                      model=self.model,
                      attempts=e.last_attempt.attempt_number)
            raise classify_error(actual_exception) from actual_exception
        except openai.OpenAIError as e:
            log.error("OpenAI stream failed to open", error=str(e), model=self.model)
            raise classify_error(e) from e

        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    yield text
        except openai.OpenAIError as e:
            log.error("OpenAI stream interrupted", error=str(e), model=self.model)
            raise classify_error(e) from e
