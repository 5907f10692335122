"""TestResultFallback - diagnoses a step from its structured test reports."""

import logging
from typing import Protocol

from src.bitbucket import PipelineAPIError, TestCase, TestCaseReason, TestReport

from .models import FailedTestCase, TestDiagnostics

logger = logging.getLogger(__name__)

# Reason lookups cost one request per failing case
DEFAULT_MAX_REASON_LOOKUPS = 20


class TestReportSource(Protocol):
    def get_test_reports(self, pipeline_id: str, step_id: str) -> list[TestReport]: ...

    def get_test_cases(self, pipeline_id: str, step_id: str) -> list[TestCase]: ...

    def get_test_case_reasons(
        self, pipeline_id: str, step_id: str, test_case_id: str
    ) -> list[TestCaseReason]: ...


class TestResultFallback:
    """Collects test-report data for a step.

    Used when a step's raw log is unavailable, or when test results are
    asked for explicitly. Collaborator failures become notes on the
    returned TestDiagnostics; collect() does not raise for them.
    """

    __test__ = False

    def __init__(
        self,
        client: TestReportSource,
        max_reason_lookups: int = DEFAULT_MAX_REASON_LOOKUPS,
    ):
        self._client = client
        self._max_reason_lookups = max_reason_lookups

    def collect(self, pipeline_id: str, step_id: str) -> TestDiagnostics:
        """Gather suite summaries and failing-case detail for one step.

        Args:
            pipeline_id: Canonical pipeline id.
            step_id: Step UUID.

        Returns:
            TestDiagnostics; ``available`` is False when no reports exist.
        """
        diagnostics = TestDiagnostics(step_id=step_id)

        try:
            diagnostics.reports = self._client.get_test_reports(pipeline_id, step_id)
        except PipelineAPIError as e:
            logger.warning("Test reports unavailable for step %s: %s", step_id, e)
            diagnostics.notes.append(f"Test reports unavailable: {e}")
            return diagnostics

        if not diagnostics.available or diagnostics.failed == 0:
            return diagnostics

        try:
            cases = self._client.get_test_cases(pipeline_id, step_id)
        except PipelineAPIError as e:
            logger.warning("Test cases unavailable for step %s: %s", step_id, e)
            diagnostics.notes.append(f"Could not retrieve test case details: {e}")
            return diagnostics

        failing = [case for case in cases if case.is_failed]
        if not failing:
            diagnostics.notes.append("Could not find detailed information for failed tests")
            return diagnostics

        for case in failing[: self._max_reason_lookups]:
            diagnostics.failed_cases.append(self._describe_failure(pipeline_id, step_id, case))

        skipped = len(failing) - self._max_reason_lookups
        if skipped > 0:
            diagnostics.failed_cases.extend(
                FailedTestCase(test_case=case) for case in failing[self._max_reason_lookups:]
            )
            diagnostics.notes.append(
                f"Failure reasons fetched for the first {self._max_reason_lookups} "
                f"of {len(failing)} failing tests"
            )

        logger.info(
            "Step %s: %d failing test cases, %d with reasons",
            step_id,
            len(failing),
            sum(1 for c in diagnostics.failed_cases if c.reasons),
        )
        return diagnostics

    def _describe_failure(self, pipeline_id: str, step_id: str, case: TestCase) -> FailedTestCase:
        try:
            reasons = self._client.get_test_case_reasons(pipeline_id, step_id, case.uuid)
        except PipelineAPIError as e:
            logger.warning("Reasons unavailable for test case %s: %s", case.uuid, e)
            return FailedTestCase(test_case=case, note=f"Failure details unavailable: {e}")
        return FailedTestCase(test_case=case, reasons=reasons)
