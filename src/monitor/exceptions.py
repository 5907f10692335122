"""Exceptions for the monitor module."""


class MonitorError(Exception):
    """Base exception for watch and follow errors."""

    pass


class FetchFailedError(MonitorError):
    """A poll could not fetch the pipeline or its steps.

    Ends the watch immediately; polling is never retried internally.

    Attributes:
        pipeline_id: Canonical id being watched.
        polls: Number of polls completed before the failure.
    """

    def __init__(self, pipeline_id: str, polls: int, reason: str):
        self.pipeline_id = pipeline_id
        self.polls = polls
        super().__init__(
            f"Stopped watching pipeline {pipeline_id} after {polls} polls: {reason}"
        )
