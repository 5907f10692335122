"""Data models for diagnostics runs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from src.bitbucket import Pipeline, PipelineStep
from src.explainer import FailureExplanation
from src.log_analysis import LogAnalysisResult
from src.test_reports import TestDiagnostics


class DiagnosisSource(Enum):
    """Where a step's diagnosis came from."""

    LOG = "log"
    TEST_REPORTS = "test_reports"
    NONE = "none"


@dataclass
class DiagnoseOptions:
    """User-selected filters and switches for a diagnostics run.

    Attributes:
        step_name: Only diagnose the first step matching this name.
        errors_only: Drop warnings from each analysis.
        context_lines: Lines of context per error. None uses the analyzer default.
        failed_only: Only diagnose steps that failed or errored.
        tests_only: Use test reports even when the log is available.
        explain: Ask the LLM explainer about steps with errors.
    """

    step_name: Optional[str] = None
    errors_only: bool = False
    context_lines: Optional[int] = None
    failed_only: bool = False
    tests_only: bool = False
    explain: bool = False


@dataclass
class StepDiagnosis:
    """Diagnosis of a single pipeline step."""

    step: PipelineStep
    source: DiagnosisSource
    duration_seconds: float = 0.0
    analysis: Optional[LogAnalysisResult] = None
    tests: Optional[TestDiagnostics] = None
    explanation: Optional[FailureExplanation] = None
    notes: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def error_count(self) -> int:
        if self.analysis is not None:
            return self.analysis.error_count
        if self.tests is not None:
            return self.tests.failed
        return 0

    @property
    def warning_count(self) -> int:
        return self.analysis.warning_count if self.analysis is not None else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step.to_dict(),
            "source": self.source.value,
            "duration_seconds": self.duration_seconds,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "tests": self.tests.to_dict() if self.tests else None,
            "explanation": self.explanation.to_dict() if self.explanation else None,
            "notes": list(self.notes),
            "error": self.error,
        }


@dataclass
class PipelineDiagnosis:
    """Aggregate result of diagnosing a pipeline's steps."""

    pipeline: Pipeline
    started_at: datetime
    finished_at: datetime | None = None
    steps: list[StepDiagnosis] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def success(self) -> bool:
        """True when every step could be diagnosed, whatever it found."""
        return all(step.success for step in self.steps)

    @property
    def total_errors(self) -> int:
        return sum(step.error_count for step in self.steps)

    @property
    def total_warnings(self) -> int:
        return sum(step.warning_count for step in self.steps)

    @property
    def has_errors(self) -> bool:
        return self.total_errors > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "pipeline": self.pipeline.to_dict(),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "total_errors": self.total_errors,
            "total_warnings": self.total_warnings,
            "steps": [step.to_dict() for step in self.steps],
            "notes": list(self.notes),
            "cancelled": self.cancelled,
        }
