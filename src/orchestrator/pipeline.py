"""DiagnosticsOrchestrator - connects resolver, client, analyzer and monitor."""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Optional

from src.bitbucket import (
    LogUnavailableError,
    PipelineClient,
    PipelineState,
    PipelineStep,
    select_step,
)
from src.explainer import ExplainerError, FailureExplainer
from src.log_analysis import LogAnalyzer
from src.monitor import (
    DEFAULT_POLL_INTERVAL,
    FollowOptions,
    MonitorLoop,
    RecordSink,
    WatchResult,
)
from src.resolver import DEFAULT_WINDOW_SIZE, PipelineIdentifierResolver
from src.test_reports import TestResultFallback

from .exceptions import StepNotFoundError
from .models import DiagnoseOptions, DiagnosisSource, PipelineDiagnosis, StepDiagnosis

logger = logging.getLogger(__name__)

FAILED_STATES = (PipelineState.FAILED, PipelineState.ERROR)


class DiagnosticsOrchestrator:
    """Runs static diagnostics and live monitoring for one pipeline.

    The static path resolves the identifier, fetches the pipeline and its
    steps once, and diagnoses each selected step from its log, falling back
    to test reports when the log cannot be retrieved. A failure while
    diagnosing one step is recorded on that step and never stops the others.

    Example:
        orchestrator = DiagnosticsOrchestrator()
        diagnosis = orchestrator.diagnose("42", DiagnoseOptions(failed_only=True))
        print(diagnosis.total_errors)
    """

    def __init__(
        self,
        client: Optional[PipelineClient] = None,
        resolver: Optional[PipelineIdentifierResolver] = None,
        analyzer: Optional[LogAnalyzer] = None,
        fallback: Optional[TestResultFallback] = None,
        explainer: Optional[FailureExplainer] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        window_size: int = DEFAULT_WINDOW_SIZE,
        cancel_event: Optional[threading.Event] = None,
    ):
        self._client = client
        self._resolver = resolver
        self._analyzer = analyzer
        self._fallback = fallback
        self._explainer = explainer
        self._poll_interval = poll_interval
        self._window_size = window_size
        self._cancel_event = cancel_event or threading.Event()

    def _get_client(self) -> PipelineClient:
        if self._client is None:
            self._client = PipelineClient()
        return self._client

    def _get_resolver(self) -> PipelineIdentifierResolver:
        if self._resolver is None:
            self._resolver = PipelineIdentifierResolver(self._get_client(), self._window_size)
        return self._resolver

    def _get_analyzer(self) -> LogAnalyzer:
        if self._analyzer is None:
            self._analyzer = LogAnalyzer()
        return self._analyzer

    def _get_fallback(self) -> TestResultFallback:
        if self._fallback is None:
            self._fallback = TestResultFallback(self._get_client())
        return self._fallback

    def _get_explainer(self) -> FailureExplainer:
        if self._explainer is None:
            self._explainer = FailureExplainer()
        return self._explainer

    def _make_monitor(self, emit: Optional[RecordSink]) -> MonitorLoop:
        return MonitorLoop(
            self._get_client(),
            emit=emit,
            poll_interval=self._poll_interval,
            cancel_event=self._cancel_event,
            analyzer=self._get_analyzer(),
        )

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    def cancel(self) -> None:
        """Stop a running watch or follow at its next tick."""
        self._cancel_event.set()

    def resolve(self, identifier: str) -> str:
        """Resolve a user identifier to a canonical pipeline id.

        Raises:
            InvalidIdentifierError: If the identifier is not usable.
            PipelineNotFoundError: If an ordinal is outside the search window.
        """
        return self._get_resolver().resolve(identifier)

    # -------------------- Static path --------------------

    def diagnose(
        self,
        identifier: str,
        options: Optional[DiagnoseOptions] = None,
    ) -> PipelineDiagnosis:
        """Diagnose the selected steps of a pipeline.

        Args:
            identifier: Canonical id, or ordinal such as "42" or "#42".
            options: Step filters and switches. Defaults to all steps.

        Returns:
            PipelineDiagnosis with one StepDiagnosis per selected step. Once the
            cancel event is set no further steps are started and the
            partial result is returned with cancelled=True.

        Raises:
            ResolverError: If the identifier cannot be resolved.
            PipelineAPIError: If the pipeline or its steps cannot be fetched.
            StepNotFoundError: If the step filter matches nothing.
        """
        options = options or DiagnoseOptions()
        pipeline_id = self.resolve(identifier)
        client = self._get_client()

        pipeline = client.get_pipeline(pipeline_id)
        steps = self._select_steps(client.list_steps(pipeline_id), options)
        logger.info(
            "Diagnosing %d step(s) of pipeline #%d (%s)",
            len(steps),
            pipeline.build_number,
            pipeline.state.value,
        )

        result = PipelineDiagnosis(pipeline=pipeline, started_at=datetime.now(timezone.utc))
        if not steps:
            result.notes.append(
                "No failed steps to diagnose" if options.failed_only else "Pipeline has no steps"
            )

        for index, step in enumerate(steps):
            if self._cancel_event.is_set():
                skipped = len(steps) - index
                logger.info("Diagnosis cancelled, skipping %d step(s)", skipped)
                result.cancelled = True
                result.notes.append(f"Cancelled: {skipped} step(s) not diagnosed")
                break
            result.steps.append(self._run_step(pipeline_id, step, options))

        result.finished_at = datetime.now(timezone.utc)
        return result

    @staticmethod
    def _select_steps(steps: list[PipelineStep], options: DiagnoseOptions) -> list[PipelineStep]:
        if options.step_name:
            chosen = select_step(steps, options.step_name)
            if chosen is None:
                raise StepNotFoundError(options.step_name, [s.name for s in steps])
            steps = [chosen]
        if options.failed_only:
            steps = [s for s in steps if s.state in FAILED_STATES]
        return steps

    def _run_step(self, pipeline_id: str, step: PipelineStep, options: DiagnoseOptions) -> StepDiagnosis:
        """Diagnose one step with timing and error isolation."""
        start = time.monotonic()
        try:
            diagnosis = self._diagnose_step(pipeline_id, step, options)
        except Exception as e:
            logger.exception("Diagnosing step '%s' failed", step.name)
            diagnosis = StepDiagnosis(step=step, source=DiagnosisSource.NONE, error=str(e))
        diagnosis.duration_seconds = round(time.monotonic() - start, 2)
        return diagnosis

    def _diagnose_step(
        self, pipeline_id: str, step: PipelineStep, options: DiagnoseOptions
    ) -> StepDiagnosis:
        if options.tests_only:
            return self._from_test_reports(pipeline_id, step)

        try:
            log = self._get_client().get_step_log(pipeline_id, step.uuid)
        except LogUnavailableError as e:
            logger.warning("Log of step '%s' unavailable, trying test reports", step.name)
            diagnosis = self._from_test_reports(pipeline_id, step)
            diagnosis.notes.insert(0, f"Log unavailable: {e.reason or 'unknown reason'}")
            return diagnosis

        analysis = self._get_analyzer().analyze(log, context_lines=options.context_lines)
        if options.errors_only:
            analysis = analysis.filter_errors_only()
        logger.debug(
            "Step '%s': %d errors, %d warnings",
            step.name,
            analysis.error_count,
            analysis.warning_count,
        )

        diagnosis = StepDiagnosis(step=step, source=DiagnosisSource.LOG, analysis=analysis)
        if options.explain and analysis.has_errors and not self._cancel_event.is_set():
            self._explain(diagnosis)
        return diagnosis

    def _from_test_reports(self, pipeline_id: str, step: PipelineStep) -> StepDiagnosis:
        tests = self._get_fallback().collect(pipeline_id, step.uuid)
        source = DiagnosisSource.TEST_REPORTS if tests.available else DiagnosisSource.NONE
        return StepDiagnosis(step=step, source=source, tests=tests, notes=list(tests.notes))

    def _explain(self, diagnosis: StepDiagnosis) -> None:
        try:
            diagnosis.explanation = self._get_explainer().explain(
                diagnosis.step.name, diagnosis.analysis
            )
        except ExplainerError as e:
            logger.warning("Could not explain step '%s': %s", diagnosis.step.name, e)
            diagnosis.notes.append(f"Explanation unavailable: {e}")

    # -------------------- Live path --------------------

    def watch(self, identifier: str, emit: Optional[RecordSink] = None) -> WatchResult:
        """Poll a pipeline until it finishes or the run is cancelled.

        Raises:
            ResolverError: If the identifier cannot be resolved.
            FetchFailedError: If a poll fails.
        """
        pipeline_id = self.resolve(identifier)
        return self._make_monitor(emit).watch(pipeline_id)

    def follow_logs(
        self,
        identifier: str,
        options: Optional[DiagnoseOptions] = None,
        emit: Optional[RecordSink] = None,
    ) -> WatchResult | PipelineDiagnosis:
        """Stream step logs of a running pipeline as they are produced.

        A pipeline that has already finished has nothing left to stream, so
        the static report is returned instead.

        Returns:
            WatchResult for a live session, PipelineDiagnosis otherwise.

        Raises:
            ResolverError: If the identifier cannot be resolved.
            FetchFailedError: If a poll fails.
            StepNotFoundError: If falling back and the step filter matches nothing.
        """
        options = options or DiagnoseOptions()
        pipeline_id = self.resolve(identifier)
        result = self._make_monitor(emit).follow(
            pipeline_id,
            FollowOptions(
                step_name=options.step_name,
                errors_only=options.errors_only,
                context_lines=options.context_lines,
            ),
        )
        if result.already_terminal:
            logger.info("Pipeline already finished, showing the full report")
            return self.diagnose(pipeline_id, options)
        return result
