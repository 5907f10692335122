"""Custom exceptions for the explainer module."""

from typing import Optional


class ExplainerError(Exception):
    """Base exception for failure explanation errors."""

    pass


class LLMConnectionError(ExplainerError):
    """Could not reach the LLM provider."""

    pass


class LLMRateLimitError(ExplainerError):
    """The LLM provider throttled the request.

    Attributes:
        retry_after: Seconds to wait before retrying, if the provider said.
    """

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class LLMResponseError(ExplainerError):
    """The LLM answered with something that is not a usable explanation.

    Attributes:
        raw_response: The text that failed to parse.
    """

    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message)
        self.raw_response = raw_response


class LLMAuthenticationError(ExplainerError):
    """The LLM provider rejected the credentials, or none were configured."""

    pass
