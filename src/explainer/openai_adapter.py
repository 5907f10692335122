"""OpenAI adapter for failure explanations."""

import logging
import os
from typing import Optional

from openai import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    OpenAI,
    RateLimitError,
)

from .adapter import LLMAdapter
from .exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
)
from .models import Message

logger = logging.getLogger(__name__)


class OpenAIAdapter(LLMAdapter):
    """LLM adapter backed by the OpenAI chat completions API.

    The API key comes from OPENAI_API_KEY and the model from OPENAI_MODEL
    unless passed explicitly. The OpenAI client is created on first use.
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 60.0,
    ):
        """Initialize the adapter.

        Args:
            api_key: OpenAI API key. Defaults to OPENAI_API_KEY env var.
            model: Model name. Defaults to OPENAI_MODEL env var, or gpt-4o-mini.
            timeout: Request timeout in seconds.

        Raises:
            LLMAuthenticationError: If no API key is available.
        """
        self._api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self._api_key:
            raise LLMAuthenticationError(
                "OpenAI API key not provided. Set OPENAI_API_KEY to use --explain."
            )
        self._model = model or os.getenv("OPENAI_MODEL") or self.DEFAULT_MODEL
        self._timeout = timeout
        self._client: Optional[OpenAI] = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key, timeout=self._timeout)
        return self._client

    def complete(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        client = self._get_client()
        logger.debug("Requesting explanation from OpenAI model=%s", self._model)

        try:
            response = client.chat.completions.create(
                model=self._model,
                messages=[m.to_dict() for m in messages],  # type: ignore[arg-type]
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object" if json_mode else "text"},  # type: ignore[arg-type]
            )
        except AuthenticationError as e:
            raise LLMAuthenticationError(f"OpenAI authentication failed: {e}") from e
        except RateLimitError as e:
            http_response = getattr(e, "response", None)
            retry_header = (
                http_response.headers.get("retry-after") if http_response is not None else None
            )
            raise LLMRateLimitError(
                f"OpenAI rate limit exceeded: {e}",
                float(retry_header) if retry_header else None,
            ) from e
        except APIConnectionError as e:
            raise LLMConnectionError(f"Failed to connect to OpenAI: {e}") from e
        except APIError as e:
            raise LLMResponseError(f"OpenAI API error: {e}") from e

        if not response.choices or response.choices[0].message.content is None:
            raise LLMResponseError("Empty response from OpenAI")
        return response.choices[0].message.content

    @property
    def model_name(self) -> str:
        return self._model
