"""PipelineClient for the Bitbucket Pipelines REST API."""

import logging
import os
from typing import Any, Iterator, Optional

import requests

from .bitbucket_auth import BitbucketAuthenticator
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    LogUnavailableError,
    PipelineAPIError,
    RateLimitError,
    ResourceNotFoundError,
)
from .models import Pipeline, PipelineStep, TestCase, TestCaseReason, TestReport

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.bitbucket.org/2.0"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Bitbucket rejects pagelen values above 100
MAX_PAGE_LENGTH = 100

# Upper bound on an archived log held in memory
MAX_LOG_BYTES = 10 * 1024 * 1024


def _braced(uuid: str) -> str:
    """Wrap a UUID in the braces Bitbucket expects in URL paths."""
    if uuid.startswith("{"):
        return uuid
    return "{" + uuid + "}"


class PipelineClient:
    """Reads pipelines, steps, logs and test reports for one repository.

    Every call translates transport and HTTP failures into the
    PipelineAPIError family; nothing is retried here.
    """

    def __init__(
        self,
        authenticator: Optional[BitbucketAuthenticator] = None,
        session: Optional[requests.Session] = None,
        workspace: Optional[str] = None,
        repo_slug: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the client.

        Args:
            authenticator: BitbucketAuthenticator used to build the session.
                Created automatically if not provided.
            session: Pre-built requests session. Overrides authenticator.
            workspace: Workspace slug. Defaults to BITBUCKET_WORKSPACE env var.
            repo_slug: Repository slug. Defaults to BITBUCKET_REPO_SLUG env var.
            base_url: API root. Defaults to BITBUCKET_API_URL env var, or the
                public Bitbucket Cloud API.
            timeout: Per-request timeout in seconds. Defaults to
                BITBUCKET_TIMEOUT env var, or 30.
        """
        self._authenticator = authenticator
        self._session = session
        self._workspace = workspace or os.environ.get("BITBUCKET_WORKSPACE")
        self._repo_slug = repo_slug or os.environ.get("BITBUCKET_REPO_SLUG")
        self._base_url = (
            base_url or os.environ.get("BITBUCKET_API_URL") or DEFAULT_API_URL
        ).rstrip("/")
        self._timeout = timeout or float(
            os.environ.get("BITBUCKET_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)
        )

    def _get_session(self) -> requests.Session:
        """Get the authenticated session (lazy init)."""
        if self._session is None:
            if self._authenticator is None:
                self._authenticator = BitbucketAuthenticator()
            self._session = self._authenticator.get_session()
        return self._session

    def _pipelines_url(self, *parts: str) -> str:
        if not self._workspace or not self._repo_slug:
            raise ConfigurationError(
                "Workspace and repository are required. Set BITBUCKET_WORKSPACE "
                "and BITBUCKET_REPO_SLUG or pass them explicitly."
            )
        url = f"{self._base_url}/repositories/{self._workspace}/{self._repo_slug}/pipelines"
        if parts:
            url += "/" + "/".join(parts)
        return url

    @staticmethod
    def _error_reason(response: Optional[requests.Response]) -> str:
        if response is None:
            return "no response"
        try:
            return response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return response.reason or response.text[:200]

    def _handle_http_error(self, error: requests.HTTPError, context: str = "") -> None:
        """Convert an HTTPError to the matching exception.

        Args:
            error: The HTTPError raised by raise_for_status().
            context: Description of the resource being requested.

        Raises:
            AuthenticationError: On 401/403.
            ResourceNotFoundError: On 404.
            RateLimitError: On 429.
            PipelineAPIError: For other API errors.
        """
        response = error.response
        status_code = response.status_code if response is not None else None
        reason = self._error_reason(response)
        logger.error("Bitbucket API error (status=%s): %s", status_code, reason)

        if status_code in (401, 403):
            raise AuthenticationError(
                f"{context}: access denied ({reason})",
                status_code=status_code,
                reason=reason,
            ) from error
        elif status_code == 404:
            raise ResourceNotFoundError(context) from error
        elif status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            ) from error
        else:
            msg = f"Bitbucket API error: {reason}"
            if context:
                msg = f"{context}: {msg}"
            raise PipelineAPIError(msg, status_code=status_code, reason=reason) from error

    def _get_json(
        self, url: str, context: str, params: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        try:
            response = self._get_session().get(url, params=params, timeout=self._timeout)
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            self._handle_http_error(e, context)
            raise  # Never reached, but satisfies type checker
        except requests.RequestException as e:
            logger.error("Request to Bitbucket failed (%s): %s", context, e)
            raise PipelineAPIError(f"{context}: {e}") from e
        except ValueError as e:
            raise PipelineAPIError(f"{context}: response is not valid JSON") from e

    def _get_values(
        self,
        url: str,
        context: str,
        params: Optional[dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Collect ``values`` across pages by following ``next`` links."""
        values: list[dict[str, Any]] = []
        next_url: Optional[str] = url
        while next_url:
            data = self._get_json(next_url, context, params=params)
            if "values" not in data:
                # Some endpoints answer with a single object instead of a page
                return [data]
            values.extend(data["values"])
            if limit is not None and len(values) >= limit:
                return values[:limit]
            next_url = data.get("next")
            # The next link already carries the query string
            params = None
        return values

    # -------------------- Pipelines --------------------

    def list_pipelines(self, window_size: int = MAX_PAGE_LENGTH) -> list[Pipeline]:
        """List the most recent pipelines, newest first.

        Args:
            window_size: Maximum number of pipelines to return.

        Returns:
            Up to window_size Pipeline objects ordered by creation, newest first.

        Raises:
            PipelineAPIError: If the API call fails.
        """
        params = {"sort": "-created_on", "pagelen": min(window_size, MAX_PAGE_LENGTH)}
        values = self._get_values(
            self._pipelines_url(), "Failed to list pipelines", params=params, limit=window_size
        )
        pipelines = [Pipeline.from_api_response(item) for item in values]
        logger.debug("Listed %d pipelines (window=%d)", len(pipelines), window_size)
        return pipelines

    def get_pipeline(self, pipeline_id: str) -> Pipeline:
        """Get a pipeline by canonical id.

        Raises:
            ResourceNotFoundError: If the pipeline doesn't exist.
            PipelineAPIError: If the API call fails.
        """
        data = self._get_json(
            self._pipelines_url(_braced(pipeline_id)), f"Pipeline {pipeline_id}"
        )
        return Pipeline.from_api_response(data)

    def list_steps(self, pipeline_id: str) -> list[PipelineStep]:
        """List the steps of a pipeline in execution order."""
        values = self._get_values(
            self._pipelines_url(_braced(pipeline_id), "steps"),
            f"Steps of pipeline {pipeline_id}",
            params={"pagelen": MAX_PAGE_LENGTH},
        )
        return [PipelineStep.from_api_response(item) for item in values]

    # -------------------- Logs --------------------

    def _log_url(self, pipeline_id: str, step_id: str) -> str:
        return self._pipelines_url(_braced(pipeline_id), "steps", _braced(step_id), "log")

    def get_step_log(self, pipeline_id: str, step_id: str) -> str:
        """Download a step's log, truncated to MAX_LOG_BYTES.

        Returns:
            The log text. Undecodable bytes are replaced, never rejected.

        Raises:
            LogUnavailableError: If the log cannot be retrieved for any reason.
        """
        chunks: list[bytes] = []
        size = 0
        try:
            with self._get_session().get(
                self._log_url(pipeline_id, step_id),
                headers={"Accept": "text/plain"},
                timeout=self._timeout,
                stream=True,
            ) as response:
                response.raise_for_status()
                for chunk in response.iter_content(chunk_size=64 * 1024):
                    chunks.append(chunk)
                    size += len(chunk)
                    if size >= MAX_LOG_BYTES:
                        logger.warning(
                            "Log for step %s exceeds %d bytes; truncating",
                            step_id,
                            MAX_LOG_BYTES,
                        )
                        break
        except requests.RequestException as e:
            logger.warning("Log for step %s unavailable: %s", step_id, e)
            raise LogUnavailableError(step_id, str(e)) from e
        return b"".join(chunks)[:MAX_LOG_BYTES].decode("utf-8", errors="replace")

    def stream_step_log(self, pipeline_id: str, step_id: str) -> Iterator[str]:
        """Yield a step's log line by line as it is received.

        Raises:
            LogUnavailableError: If the stream cannot be opened or breaks.
        """
        try:
            with self._get_session().get(
                self._log_url(pipeline_id, step_id),
                headers={"Accept": "text/plain"},
                timeout=self._timeout,
                stream=True,
            ) as response:
                response.raise_for_status()
                for raw in response.iter_lines(delimiter=b"\n"):
                    yield raw.rstrip(b"\r").decode("utf-8", errors="replace")
        except requests.RequestException as e:
            raise LogUnavailableError(step_id, str(e)) from e

    # -------------------- Test reports --------------------

    def get_test_reports(self, pipeline_id: str, step_id: str) -> list[TestReport]:
        """Get per-suite test summaries for a step."""
        values = self._get_values(
            self._pipelines_url(_braced(pipeline_id), "steps", _braced(step_id), "test_reports"),
            f"Test reports of step {step_id}",
        )
        return [TestReport.from_api_response(item) for item in values]

    def get_test_cases(self, pipeline_id: str, step_id: str) -> list[TestCase]:
        """Get individual test case results for a step."""
        values = self._get_values(
            self._pipelines_url(
                _braced(pipeline_id), "steps", _braced(step_id), "test_reports", "test_cases"
            ),
            f"Test cases of step {step_id}",
            params={"pagelen": MAX_PAGE_LENGTH},
        )
        return [TestCase.from_api_response(item) for item in values]

    def get_test_case_reasons(
        self, pipeline_id: str, step_id: str, test_case_id: str
    ) -> list[TestCaseReason]:
        """Get the failure narratives recorded for one test case."""
        values = self._get_values(
            self._pipelines_url(
                _braced(pipeline_id),
                "steps",
                _braced(step_id),
                "test_reports",
                "test_cases",
                _braced(test_case_id),
                "test_case_reasons",
            ),
            f"Reasons for test case {test_case_id}",
        )
        return [TestCaseReason.from_api_response(item) for item in values]
