"""Live monitoring of running pipelines.

MonitorLoop polls a pipeline until it finishes, emitting status updates
and state-change notifications; in follow mode it also streams the log of
each newly observed step through LogFollower and summarizes it with
LogAnalyzer once the stream closes.
"""

from .exceptions import FetchFailedError, MonitorError
from .log_follower import LogFollower
from .models import (
    FollowedStream,
    MonitorPhase,
    StateChange,
    StepAnalysis,
    StepLogLine,
    StepStreamError,
    StepStreamStarted,
    WatchCancelled,
    WatchCompletion,
    WatchOutcome,
    WatchResult,
    WatchSession,
    WatchUpdate,
    format_duration,
)
from .monitor_loop import DEFAULT_POLL_INTERVAL, FollowOptions, MonitorLoop, RecordSink

__all__ = [
    # Main classes
    "MonitorLoop",
    "LogFollower",
    "FollowOptions",
    "RecordSink",
    "DEFAULT_POLL_INTERVAL",
    "format_duration",
    # Models
    "FollowedStream",
    "MonitorPhase",
    "StateChange",
    "StepAnalysis",
    "StepLogLine",
    "StepStreamError",
    "StepStreamStarted",
    "WatchCancelled",
    "WatchCompletion",
    "WatchOutcome",
    "WatchResult",
    "WatchSession",
    "WatchUpdate",
    # Exceptions
    "MonitorError",
    "FetchFailedError",
]
