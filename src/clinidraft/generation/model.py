"""Generative model client for draft generation.

The pipeline depends only on the ``LanguageModel`` protocol:
``generate(system, prompt) -> ModelResponse``. ``ChatCompletionClient``
implements it over an OpenAI-compatible ``/chat/completions`` endpoint with
httpx, retrying timeouts, connection errors and 5xx responses with
exponential backoff.

Responses are untrusted. The text is returned verbatim and every usage
field is treated as optional and possibly mistyped.

Example usage:
    >>> from clinidraft.config import ModelConfig
    >>> async with ChatCompletionClient(ModelConfig(api_key="sk-...")) as client:
    ...     response = await client.generate("You are...", "Patient: Jane Doe")
    ...     print(response.text, response.usage.prompt_tokens)
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol, runtime_checkable

import httpx
import structlog
from pydantic import BaseModel, Field

from clinidraft.config import ModelConfig

logger = structlog.get_logger(__name__)


class ModelClientError(Exception):
    """Base exception for model client errors."""

    pass


class ModelTimeoutError(ModelClientError):
    """Raised when the model request times out."""

    pass


class ModelConnectionError(ModelClientError):
    """Raised when unable to connect to the model endpoint."""

    pass


class ModelAPIError(ModelClientError):
    """Raised when the model API returns an error or unusable response."""

    pass


class TokenUsage(BaseModel):
    """Token usage counters; either may be missing."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None


class ModelResponse(BaseModel):
    """Text and usage returned by one model call."""

    text: str
    usage: TokenUsage = Field(default_factory=TokenUsage)


def _int_or_none(value: Any) -> int | None:
    # bool is an int subclass and never a token count
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value >= 0 else None


def parse_usage(raw: Any) -> TokenUsage:
    """Read token counters from an untyped usage payload.

    Accepts camelCase (``promptTokens``) and snake_case (``prompt_tokens``)
    keys. Anything that is not a non-negative integer is dropped.

    Args:
        raw: Usage object from the model response, of any shape.

    Returns:
        TokenUsage with whatever counters could be read.
    """
    if isinstance(raw, TokenUsage):
        return raw
    if not isinstance(raw, dict):
        return TokenUsage()
    prompt = raw.get("promptTokens", raw.get("prompt_tokens"))
    completion = raw.get("completionTokens", raw.get("completion_tokens"))
    return TokenUsage(
        prompt_tokens=_int_or_none(prompt),
        completion_tokens=_int_or_none(completion),
    )


@runtime_checkable
class LanguageModel(Protocol):
    """Interface the generation pipeline uses to call a model."""

    @property
    def model_name(self) -> str:
        """Identifier recorded on generated drafts."""
        ...

    async def generate(self, system: str, prompt: str) -> ModelResponse:
        """Generate a completion for ``prompt`` under ``system``.

        Raises:
            ModelClientError: On transport or API failure.
        """
        ...


class ChatCompletionClient:
    """Async client for an OpenAI-compatible chat completions API.

    Attributes:
        config: Model configuration containing URL, model and timeouts
    """

    def __init__(self, config: ModelConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = None
        logger.info(
            "model_client_initialized",
            base_url=config.base_url,
            model=config.model,
            timeout=config.timeout_seconds,
        )

    @property
    def model_name(self) -> str:
        return self.config.model

    async def __aenter__(self) -> ChatCompletionClient:
        """Async context manager entry."""
        headers = {"Content-Type": "application/json"}
        if self.config.api_key is not None:
            headers["Authorization"] = f"Bearer {self.config.api_key.get_secret_value()}"
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout_seconds),
            headers=headers,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("ChatCompletionClient must be used as async context manager")
        return self._client

    async def generate(
        self, system: str, prompt: str, initial_backoff: float = 1.0
    ) -> ModelResponse:
        """Request a completion.

        Args:
            system: System prompt.
            prompt: User prompt.
            initial_backoff: Initial backoff delay in seconds.

        Returns:
            ModelResponse with the first choice's text and parsed usage.

        Raises:
            ModelTimeoutError: If the request times out after all retries
            ModelConnectionError: If unable to connect after all retries
            ModelAPIError: If the API returns an error or malformed body
        """
        client = self._get_client()
        max_retries = self.config.max_retries
        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

        for attempt in range(max_retries + 1):
            try:
                logger.debug(
                    "model_request",
                    attempt=attempt + 1,
                    max_attempts=max_retries + 1,
                    prompt_length=len(prompt),
                )

                response = await client.post("/chat/completions", json=payload)

                if response.status_code == 200:
                    return self._parse_response(response)

                error_msg = f"API error: HTTP {response.status_code}"
                try:
                    error_msg = f"{error_msg}: {response.json()}"
                except ValueError:
                    error_msg = f"{error_msg}: {response.text}"

                if (
                    response.status_code == 429 or 500 <= response.status_code < 600
                ) and attempt < max_retries:
                    backoff = initial_backoff * (2**attempt)
                    logger.warning(
                        "model_server_error_retry",
                        status_code=response.status_code,
                        attempt=attempt + 1,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue

                raise ModelAPIError(error_msg)

            except httpx.TimeoutException as e:
                if attempt < max_retries:
                    backoff = initial_backoff * (2**attempt)
                    logger.warning(
                        "model_timeout_retry",
                        attempt=attempt + 1,
                        backoff_seconds=backoff,
                        error=str(e),
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.error(
                    "model_timeout_exhausted",
                    max_retries=max_retries,
                    timeout_seconds=self.config.timeout_seconds,
                )
                raise ModelTimeoutError(
                    f"Request timed out after {max_retries} retries"
                ) from e

            except (httpx.ConnectError, httpx.NetworkError) as e:
                if attempt < max_retries:
                    backoff = initial_backoff * (2**attempt)
                    logger.warning(
                        "model_connection_error_retry",
                        attempt=attempt + 1,
                        backoff_seconds=backoff,
                        error=str(e),
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.error(
                    "model_connection_exhausted",
                    base_url=self.config.base_url,
                    max_retries=max_retries,
                )
                raise ModelConnectionError(
                    f"Failed to connect to model API at {self.config.base_url}"
                ) from e

        raise ModelClientError("Unexpected retry loop exit")

    @staticmethod
    def _parse_response(response: httpx.Response) -> ModelResponse:
        try:
            data = response.json()
        except ValueError as e:
            raise ModelAPIError("Response body is not JSON") from e

        if not isinstance(data, dict):
            raise ModelAPIError("Response body is not a JSON object")

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise ModelAPIError("Response has no choices")

        message = choices[0].get("message")
        text = message.get("content") if isinstance(message, dict) else None
        if not isinstance(text, str):
            raise ModelAPIError("Response choice has no text content")

        return ModelResponse(text=text, usage=parse_usage(data.get("usage")))
