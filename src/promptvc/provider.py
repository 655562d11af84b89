# Copyright (c) Syntropy Systems
"""HTTP client for OpenAI-compatible chat completion APIs."""
from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Literal, Optional, Protocol

import httpx
from pydantic import Field, ValidationError
from typing_extensions import Self

from promptvc.config import DEFAULT_BASE_URL
from promptvc.errors import AuthError, ProviderError
from promptvc.models.base import PvcBaseModel

if TYPE_CHECKING:
    from types import TracebackType

    from promptvc.config import PvcConfig

logger = logging.getLogger(__name__)

API_KEY_ENV = "OPENAI_API_KEY"


class ChatMessage(PvcBaseModel):
    """One message in a chat request."""

    role: Literal["system", "user", "assistant"]
    content: str


class ChatCompletionRequest(PvcBaseModel):
    """Request body for /chat/completions."""

    model: str
    messages: list[ChatMessage]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class ResponseMessage(PvcBaseModel):
    """Assistant message in a completion choice."""

    content: Optional[str] = None


class Choice(PvcBaseModel):
    """One completion choice."""

    message: ResponseMessage
    finish_reason: Optional[str] = None


class Usage(PvcBaseModel):
    """Token usage reported by the provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(PvcBaseModel):
    """Response body from /chat/completions."""

    id: Optional[str] = None
    choices: list[Choice] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)

    @property
    def text(self) -> str:
        """Content of the first choice, or an empty string."""
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""


class ChatProvider(Protocol):
    """Anything that can answer a chat completion request."""

    def create_chat_completion(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        ...


class OpenAIChatClient:
    """Chat completion client for the OpenAI API and compatible servers.

    httpx clients are safe to share between threads, so one instance serves
    every worker of a test run.
    """

    base_url: str
    timeout: float
    _api_key: str
    _client: httpx.Client

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: API key; falls back to the OPENAI_API_KEY environment variable
            base_url: API root (e.g., "https://api.openai.com/v1")
            timeout: Per-request timeout in seconds

        """
        key = api_key or os.environ.get(API_KEY_ENV, "")
        if not key:
            msg = f"{API_KEY_ENV} environment variable is required"
            raise AuthError(msg)

        self._api_key = key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {key}"},
        )

    @property
    def masked_key(self) -> str:
        """API key with the middle elided, for logs."""
        if len(self._api_key) <= 8:
            return "*" * len(self._api_key)
        return f"{self._api_key[:6]}...{self._api_key[-4:]}"

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> Self:
        """Enter the client context and return self."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the client context and close the HTTP client."""
        self.close()

    def create_chat_completion(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """POST a chat completion request.

        Raises:
            ProviderError: on HTTP status errors, transport errors or a
                malformed response body.

        """
        try:
            response = self._client.post(
                "/chat/completions",
                json=request.model_dump(exclude_none=True),
            )
            _ = response.raise_for_status()
            return ChatCompletionResponse.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            msg = f"API request failed ({e.response.status_code}): {detail}"
            raise ProviderError(msg) from e
        except httpx.RequestError as e:
            msg = f"Connection error: {e}"
            raise ProviderError(msg) from e
        except (ValidationError, ValueError) as e:
            msg = f"Malformed API response: {e}"
            raise ProviderError(msg) from e


def _error_detail(response: httpx.Response) -> str:
    """Extract the provider's error message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return response.text or response.reason_phrase


def create_provider(config: PvcConfig, api_key: str | None = None) -> OpenAIChatClient:
    """Build the provider client described by ``config``."""
    client = OpenAIChatClient(
        api_key=api_key,
        base_url=config.base_url,
        timeout=config.request_timeout,
    )
    logger.debug("Using %s with key %s", client.base_url, client.masked_key)
    return client
