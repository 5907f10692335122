"""Data models for the monitor module.

Each record is a complete, self-contained line of output; the presentation
layer renders records whole so an interrupted watch never leaves a
half-written line behind.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from src.bitbucket import Pipeline, PipelineState, PipelineStep
from src.log_analysis import LogAnalysisResult


def format_duration(seconds: float) -> str:
    """Format seconds as ``45s``, ``2m 5s`` or ``1h 3m``."""
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


class MonitorPhase(Enum):
    """Lifecycle of a single watch or follow call."""

    INITIALIZING = "initializing"
    POLLING = "polling"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class WatchOutcome(Enum):
    """How a watch ended, from the user's point of view."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class WatchSession:
    """Mutable state owned by one MonitorLoop call.

    Attributes:
        pipeline_id: Canonical id being watched.
        poll_interval: Seconds between polls.
        phase: Current lifecycle phase.
        previous_state: Last recorded pipeline state.
        seen_fingerprints: (step_id, state) pairs already streamed.
        polls: Number of completed poll ticks.
        state_changes: Number of state transitions reported.
    """

    pipeline_id: str
    poll_interval: float
    phase: MonitorPhase = MonitorPhase.INITIALIZING
    previous_state: Optional[PipelineState] = None
    seen_fingerprints: set[tuple[str, PipelineState]] = field(default_factory=set)
    polls: int = 0
    state_changes: int = 0

    def record_state(self, state: PipelineState) -> Optional[PipelineState]:
        """Store the latest state.

        Returns:
            The previous state when this is a real change, otherwise None.
        """
        previous = self.previous_state
        self.previous_state = state
        if previous is None or previous == state:
            return None
        self.state_changes += 1
        return previous

    def first_sighting(self, step: PipelineStep) -> bool:
        """Mark a step observation as seen; True if it was new."""
        if step.fingerprint in self.seen_fingerprints:
            return False
        self.seen_fingerprints.add(step.fingerprint)
        return True


@dataclass
class WatchUpdate:
    """Periodic status line for a running pipeline."""

    timestamp: datetime
    build_number: int
    state: PipelineState
    elapsed_seconds: int
    active_steps: list[str] = field(default_factory=list)
    completed_steps: int = 0
    total_steps: int = 0

    def to_text(self) -> str:
        text = (
            f"[{self.timestamp:%H:%M:%S}] {self.state.icon} Pipeline #{self.build_number}: "
            f"{self.state.label} ({format_duration(self.elapsed_seconds)})"
        )
        if self.active_steps:
            text += f" | 🔄 {', '.join(self.active_steps)}"
        if self.total_steps:
            text += f" [{self.completed_steps}/{self.total_steps} steps]"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "update",
            "timestamp": self.timestamp.isoformat(),
            "build_number": self.build_number,
            "state": self.state.value,
            "elapsed_seconds": self.elapsed_seconds,
            "active_steps": list(self.active_steps),
            "completed_steps": self.completed_steps,
            "total_steps": self.total_steps,
        }


@dataclass
class StateChange:
    """Notification that the pipeline moved from one state to another."""

    timestamp: datetime
    build_number: int
    previous: PipelineState
    current: PipelineState

    def to_text(self) -> str:
        return (
            f"[{self.timestamp:%H:%M:%S}] Pipeline #{self.build_number} state changed: "
            f"{self.previous.label} → {self.current.label}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "state_change",
            "timestamp": self.timestamp.isoformat(),
            "build_number": self.build_number,
            "previous": self.previous.value,
            "current": self.current.value,
        }


@dataclass
class WatchCompletion:
    """Final record of a watch that reached a terminal state."""

    pipeline: Pipeline
    already_terminal: bool = False

    def to_text(self) -> str:
        state = self.pipeline.state
        verb = "already finished" if self.already_terminal else "finished"
        return (
            f"{state.icon} Pipeline #{self.pipeline.build_number} {verb}: {state.label} "
            f"({format_duration(self.pipeline.elapsed_seconds())})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "completed",
            "already_terminal": self.already_terminal,
            "pipeline": self.pipeline.to_dict(),
        }


@dataclass
class WatchCancelled:
    """Final record of a watch stopped by the user."""

    build_number: int
    last_state: Optional[PipelineState]

    def to_text(self) -> str:
        last = self.last_state.label if self.last_state else "UNKNOWN"
        return f"🛑 Stopped watching pipeline #{self.build_number} (last state: {last})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "cancelled",
            "build_number": self.build_number,
            "last_state": self.last_state.value if self.last_state else None,
        }


@dataclass
class StepStreamStarted:
    step_name: str
    state: PipelineState

    def to_text(self) -> str:
        return f"=== Step: {self.step_name} ({self.state.label}) ==="

    def to_dict(self) -> dict[str, Any]:
        return {"type": "step_started", "step": self.step_name, "state": self.state.value}


@dataclass
class StepLogLine:
    """One streamed log line; ``flagged`` marks error and critical lines."""

    step_name: str
    line: str
    flagged: bool = False

    def to_text(self) -> str:
        marker = "❌" if self.flagged else "  "
        return f"{marker} [{self.step_name}] {self.line}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "log_line",
            "step": self.step_name,
            "line": self.line,
            "flagged": self.flagged,
        }


@dataclass
class StepAnalysis:
    """Categorized summary of a step's stream once it closed."""

    step_name: str
    step_id: str
    analysis: LogAnalysisResult

    def to_text(self) -> str:
        text = (
            f"📊 {self.step_name}: {self.analysis.error_count} errors, "
            f"{self.analysis.warning_count} warnings in {self.analysis.total_lines} lines"
        )
        if self.analysis.summary:
            parts = ", ".join(
                f"{category.value}: {count}" for category, count in self.analysis.summary.items()
            )
            text += f" ({parts})"
        return text

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "step_analysis",
            "step": self.step_name,
            "step_id": self.step_id,
            "analysis": self.analysis.to_dict(),
        }


@dataclass
class StepStreamError:
    step_name: str
    step_id: str
    message: str

    def to_text(self) -> str:
        return f"⚠️  Could not stream logs for step '{self.step_name}': {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "step_error",
            "step": self.step_name,
            "step_id": self.step_id,
            "message": self.message,
        }


@dataclass
class FollowedStream:
    """What a LogFollower collected from one step's stream."""

    step_id: str
    lines: list[str] = field(default_factory=list)
    error: Optional[str] = None
    cancelled: bool = False

    @property
    def completed(self) -> bool:
        return self.error is None and not self.cancelled


@dataclass
class WatchResult:
    """Outcome of a watch or follow call."""

    outcome: WatchOutcome
    pipeline: Optional[Pipeline]
    polls: int = 0
    state_changes: int = 0
    already_terminal: bool = False
    step_analyses: list[StepAnalysis] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.outcome is WatchOutcome.CANCELLED

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "pipeline": self.pipeline.to_dict() if self.pipeline else None,
            "polls": self.polls,
            "state_changes": self.state_changes,
            "already_terminal": self.already_terminal,
            "step_analyses": [a.to_dict() for a in self.step_analyses],
        }
