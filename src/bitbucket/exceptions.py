"""Exceptions for the bitbucket module."""


class PipelineAPIError(Exception):
    """Raised when a Bitbucket Pipelines API call fails.

    Also the base class for every error raised by PipelineClient, so a
    caller polling the API can treat any of them as a failed fetch.
    """

    def __init__(self, message: str, status_code: int | None = None, reason: str | None = None):
        self.status_code = status_code
        self.reason = reason
        super().__init__(message)


class ConfigurationError(PipelineAPIError):
    """Raised when workspace or repository settings are missing."""

    pass


class AuthenticationError(PipelineAPIError):
    """Raised when credentials are missing or rejected (401/403)."""

    pass


class ResourceNotFoundError(PipelineAPIError):
    """Raised when a pipeline, step or report does not exist."""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"{resource} not found", status_code=404)


class RateLimitError(PipelineAPIError):
    """Raised when API rate limits are exceeded."""

    def __init__(self, retry_after: int | None = None):
        self.retry_after = retry_after
        msg = "Bitbucket API rate limit exceeded"
        if retry_after:
            msg += f". Retry after {retry_after} seconds"
        super().__init__(msg, status_code=429)


class LogUnavailableError(PipelineAPIError):
    """Raised when a step's log cannot be retrieved.

    Recoverable: callers fall back to test reports instead of failing.
    """

    def __init__(self, step_id: str, reason: str | None = None):
        self.step_id = step_id
        msg = f"Log for step '{step_id}' is unavailable"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, reason=reason)
