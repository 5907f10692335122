"""Data models for the test_reports module."""

from dataclasses import dataclass, field
from typing import Any, Optional

from src.bitbucket import TestCase, TestCaseReason, TestReport

NO_DATA_MESSAGE = "No diagnostic data available"


@dataclass
class FailedTestCase:
    """A failing test case with whatever failure detail could be fetched.

    Attributes:
        test_case: The failing case.
        reasons: Extended failure narratives, possibly empty.
        note: Set when the reasons could not be retrieved.
    """

    test_case: TestCase
    reasons: list[TestCaseReason] = field(default_factory=list)
    note: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "test_case": self.test_case.to_dict(),
            "reasons": [r.to_dict() for r in self.reasons],
            "note": self.note,
        }


@dataclass
class TestDiagnostics:
    """Test-report view of one step, used when its log is unavailable."""

    __test__ = False

    step_id: str
    reports: list[TestReport] = field(default_factory=list)
    failed_cases: list[FailedTestCase] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def available(self) -> bool:
        return bool(self.reports)

    @property
    def total(self) -> int:
        return sum(r.total for r in self.reports)

    @property
    def passed(self) -> int:
        return sum(r.passed for r in self.reports)

    @property
    def failed(self) -> int:
        return sum(r.failed for r in self.reports)

    @property
    def skipped(self) -> int:
        return sum(r.skipped for r in self.reports)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0 or bool(self.failed_cases)

    def summary_line(self) -> str:
        if not self.available:
            return NO_DATA_MESSAGE
        if not self.has_failures:
            return f"All {self.total} tests passed ({self.skipped} skipped)"
        return (
            f"{self.failed} of {self.total} tests failed "
            f"({self.passed} passed, {self.skipped} skipped)"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_id": self.step_id,
            "available": self.available,
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "reports": [r.to_dict() for r in self.reports],
            "failed_cases": [c.to_dict() for c in self.failed_cases],
            "notes": list(self.notes),
        }
