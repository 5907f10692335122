"""Exceptions for the resolver module."""


class ResolverError(Exception):
    """Base exception for pipeline identifier resolution."""

    pass


class InvalidIdentifierError(ResolverError):
    """Raised when an identifier is neither a canonical id nor a positive ordinal."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(
            f"Invalid pipeline identifier '{identifier}': expected a pipeline "
            "UUID or a positive build number such as 42 or #42"
        )


class PipelineNotFoundError(ResolverError):
    """Raised when an ordinal is not among the recent pipelines searched."""

    def __init__(self, build_number: int, window_size: int):
        self.build_number = build_number
        self.window_size = window_size
        super().__init__(
            f"Pipeline #{build_number} not found in the {window_size} most recent "
            "pipelines; it may be older than the searchable window, use its UUID instead"
        )
