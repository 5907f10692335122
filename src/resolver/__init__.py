"""Pipeline identifier resolution.

Accepts either a canonical pipeline UUID or a build number (``42`` or
``#42``) and returns the canonical id used by every other API call.
"""

from .exceptions import InvalidIdentifierError, PipelineNotFoundError, ResolverError
from .identifier_resolver import (
    DEFAULT_WINDOW_SIZE,
    PipelineIdentifierResolver,
    parse_ordinal,
)

__all__ = [
    "PipelineIdentifierResolver",
    "parse_ordinal",
    "DEFAULT_WINDOW_SIZE",
    "ResolverError",
    "InvalidIdentifierError",
    "PipelineNotFoundError",
]
