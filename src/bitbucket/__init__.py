"""Bitbucket Pipelines integration module.

This module provides the PipelineClient for reading pipelines, steps,
step logs and test reports from the Bitbucket Cloud REST API.
"""

from .bitbucket_auth import BitbucketAuthenticator
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    LogUnavailableError,
    PipelineAPIError,
    RateLimitError,
    ResourceNotFoundError,
)
from .models import (
    Pipeline,
    PipelineState,
    PipelineStep,
    TestCase,
    TestCaseReason,
    TestReport,
    matches_step_name,
    select_step,
)
from .pipeline_client import PipelineClient

__all__ = [
    # Main classes
    "PipelineClient",
    "BitbucketAuthenticator",
    # Models
    "Pipeline",
    "PipelineState",
    "PipelineStep",
    "TestCase",
    "TestCaseReason",
    "TestReport",
    "matches_step_name",
    "select_step",
    # Exceptions
    "PipelineAPIError",
    "AuthenticationError",
    "ConfigurationError",
    "LogUnavailableError",
    "RateLimitError",
    "ResourceNotFoundError",
]
