"""Data models for the bitbucket module."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class PipelineState(Enum):
    """Effective state of a pipeline or step."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCESSFUL = "successful"
    FAILED = "failed"
    ERROR = "error"
    STOPPED = "stopped"

    @property
    def is_watchable(self) -> bool:
        """Whether the pipeline may still change state."""
        return self in (PipelineState.PENDING, PipelineState.IN_PROGRESS)

    @property
    def is_terminal(self) -> bool:
        return not self.is_watchable

    @property
    def icon(self) -> str:
        return _STATE_ICONS.get(self, "❓")

    @property
    def label(self) -> str:
        """Upper-case display name, as the Bitbucket UI shows it."""
        return self.value.upper()

    @classmethod
    def from_api(cls, state: Optional[dict[str, Any]]) -> "PipelineState":
        """Resolve the effective state from a Bitbucket ``state`` object.

        Bitbucket reports ``state.name`` (e.g. COMPLETED) and, once a run
        has finished, ``state.result.name`` (e.g. FAILED). The result wins
        when present.

        Args:
            state: The ``state`` object of a pipeline or step, or None.

        Returns:
            The matching PipelineState. Unrecognised names resolve to ERROR.
        """
        if not state:
            return cls.PENDING
        result = state.get("result") or {}
        raw = result.get("name") or state.get("name") or ""
        return _RAW_STATES.get(raw.upper(), cls.ERROR)


_STATE_ICONS = {
    PipelineState.SUCCESSFUL: "✅",
    PipelineState.FAILED: "❌",
    PipelineState.IN_PROGRESS: "🔄",
    PipelineState.PENDING: "⏳",
    PipelineState.STOPPED: "🛑",
    PipelineState.ERROR: "💥",
}

_RAW_STATES = {
    "PENDING": PipelineState.PENDING,
    "READY": PipelineState.PENDING,
    "PARSING": PipelineState.PENDING,
    "IN_PROGRESS": PipelineState.IN_PROGRESS,
    "RUNNING": PipelineState.IN_PROGRESS,
    "PAUSED": PipelineState.IN_PROGRESS,
    "SUCCESSFUL": PipelineState.SUCCESSFUL,
    "COMPLETED": PipelineState.SUCCESSFUL,
    "PASSED": PipelineState.SUCCESSFUL,
    "FAILED": PipelineState.FAILED,
    "FAILURE": PipelineState.FAILED,
    "ERROR": PipelineState.ERROR,
    "STOPPED": PipelineState.STOPPED,
    "HALTED": PipelineState.STOPPED,
    "NOT_RUN": PipelineState.STOPPED,
    "EXPIRED": PipelineState.STOPPED,
}


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # Bitbucket returns ISO 8601 with a trailing Z
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _state_names(state: Optional[dict[str, Any]]) -> tuple[str, Optional[str]]:
    state = state or {}
    result = state.get("result") or {}
    return state.get("name", ""), result.get("name")


@dataclass
class Pipeline:
    """A single pipeline run.

    Attributes:
        uuid: Canonical identifier, including Bitbucket's braces.
        build_number: Ordinal shown in the UI as ``#N``.
        state: Effective state (result preferred over state name).
        state_name: Raw ``state.name`` from the API.
        result_name: Raw ``state.result.name``, set once completed.
        target_branch: Branch or tag the pipeline ran against.
        commit: Commit hash the pipeline ran against.
        created_on: When the run was created.
        completed_on: When the run finished, if it has.
        duration_seconds: Build seconds reported by the API.
    """

    uuid: str
    build_number: int
    state: PipelineState
    state_name: str = ""
    result_name: Optional[str] = None
    target_branch: Optional[str] = None
    commit: Optional[str] = None
    created_on: Optional[datetime] = None
    completed_on: Optional[datetime] = None
    duration_seconds: int = 0

    def elapsed_seconds(self, now: Optional[datetime] = None) -> int:
        """Seconds the run has taken so far, or in total once finished."""
        if self.created_on is None:
            return self.duration_seconds
        end = self.completed_on or now or datetime.now(self.created_on.tzinfo)
        return max(0, int((end - self.created_on).total_seconds()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "build_number": self.build_number,
            "state": self.state.value,
            "state_name": self.state_name,
            "result_name": self.result_name,
            "target_branch": self.target_branch,
            "commit": self.commit,
            "created_on": self.created_on.isoformat() if self.created_on else None,
            "completed_on": self.completed_on.isoformat() if self.completed_on else None,
            "duration_seconds": self.duration_seconds,
        }

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Pipeline":
        """Create from a Bitbucket pipeline object."""
        state_name, result_name = _state_names(data.get("state"))
        target = data.get("target") or {}
        commit = target.get("commit") or {}
        return cls(
            uuid=data["uuid"],
            build_number=int(data.get("build_number", 0)),
            state=PipelineState.from_api(data.get("state")),
            state_name=state_name,
            result_name=result_name,
            target_branch=target.get("ref_name"),
            commit=commit.get("hash"),
            created_on=_parse_timestamp(data.get("created_on")),
            completed_on=_parse_timestamp(data.get("completed_on")),
            duration_seconds=int(data.get("build_seconds_used") or 0),
        )


@dataclass
class PipelineStep:
    """A step within a pipeline run."""

    uuid: str
    name: str
    state: PipelineState
    state_name: str = ""
    result_name: Optional[str] = None
    started_on: Optional[datetime] = None
    completed_on: Optional[datetime] = None
    duration_seconds: int = 0

    @property
    def fingerprint(self) -> tuple[str, PipelineState]:
        """Identity plus observed state, used to detect new observations."""
        return (self.uuid, self.state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "name": self.name,
            "state": self.state.value,
            "state_name": self.state_name,
            "result_name": self.result_name,
            "started_on": self.started_on.isoformat() if self.started_on else None,
            "completed_on": self.completed_on.isoformat() if self.completed_on else None,
            "duration_seconds": self.duration_seconds,
        }

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "PipelineStep":
        state_name, result_name = _state_names(data.get("state"))
        return cls(
            uuid=data["uuid"],
            name=data.get("name") or "(unnamed step)",
            state=PipelineState.from_api(data.get("state")),
            state_name=state_name,
            result_name=result_name,
            started_on=_parse_timestamp(data.get("started_on")),
            completed_on=_parse_timestamp(data.get("completed_on")),
            duration_seconds=int(data.get("build_seconds_used") or 0),
        )


@dataclass
class TestReport:
    """Summary counts for one test suite reported by a step."""

    __test__ = False

    name: str
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    total: int = 0
    uuid: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "name": self.name,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "total": self.total,
            "duration_seconds": self.duration_seconds,
        }

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "TestReport":
        passed = int(data.get("passed") or data.get("number_of_successful_test_cases") or 0)
        failed = int(data.get("failed") or data.get("number_of_failed_test_cases") or 0)
        skipped = int(data.get("skipped") or data.get("number_of_skipped_test_cases") or 0)
        total = int(data.get("total") or data.get("number_of_test_cases") or 0)
        return cls(
            uuid=data.get("uuid"),
            name=data.get("name") or "Test Results",
            passed=passed,
            failed=failed,
            skipped=skipped,
            total=total or passed + failed + skipped,
            duration_seconds=float(data.get("duration") or 0.0),
        )


@dataclass
class TestCaseReason:
    """Extended failure narrative for a test case."""

    __test__ = False

    message: str
    output: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "output": self.output}

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "TestCaseReason":
        return cls(message=data.get("message", ""), output=data.get("output"))


@dataclass
class TestCase:
    """A single test case result."""

    __test__ = False

    uuid: str
    name: str
    status: str = ""
    result: Optional[str] = None
    class_name: Optional[str] = None
    test_suite: Optional[str] = None
    duration_seconds: float = 0.0
    message: Optional[str] = None
    stacktrace: Optional[str] = None

    @property
    def is_failed(self) -> bool:
        return "FAILED" in (self.status.upper(), (self.result or "").upper())

    @property
    def qualified_name(self) -> str:
        if self.class_name:
            return f"{self.class_name}.{self.name}"
        return self.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "name": self.name,
            "status": self.status,
            "result": self.result,
            "class_name": self.class_name,
            "test_suite": self.test_suite,
            "duration_seconds": self.duration_seconds,
            "message": self.message,
            "stacktrace": self.stacktrace,
        }

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "TestCase":
        return cls(
            uuid=data["uuid"],
            name=data.get("name", ""),
            status=data.get("status", ""),
            result=data.get("result"),
            class_name=data.get("class_name"),
            test_suite=data.get("test_suite"),
            duration_seconds=float(data.get("duration") or 0.0),
            message=data.get("message"),
            stacktrace=data.get("stacktrace"),
        )


def matches_step_name(step_name: str, requested: str) -> bool:
    """Case-insensitive exact, substring or prefix match of a step name."""
    name = step_name.lower()
    wanted = requested.lower()
    return name == wanted or wanted in name or name.startswith(wanted)


def select_step(steps: list[PipelineStep], requested: str) -> Optional[PipelineStep]:
    """Return the first step, in listing order, whose name matches."""
    for step in steps:
        if matches_step_name(step.name, requested):
            return step
    return None
