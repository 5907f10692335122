"""MonitorLoop - polls a running pipeline until it finishes or is cancelled."""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Protocol

from src.bitbucket import (
    Pipeline,
    PipelineAPIError,
    PipelineState,
    PipelineStep,
    select_step,
)
from src.log_analysis import LogAnalyzer

from .exceptions import FetchFailedError
from .log_follower import LogFollower
from .models import (
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
)

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0

RecordSink = Callable[[Any], None]


class PipelineSource(Protocol):
    def get_pipeline(self, pipeline_id: str) -> Pipeline: ...

    def list_steps(self, pipeline_id: str) -> list[PipelineStep]: ...


@dataclass
class FollowOptions:
    """Settings for streaming step logs while watching."""

    step_name: Optional[str] = None
    errors_only: bool = False
    context_lines: Optional[int] = None


def _log_record(record: Any) -> None:
    logger.info("%s", record.to_text())


class MonitorLoop:
    """Polling state machine for watch and follow.

    Initializing fetches the pipeline once; a pipeline that has already
    finished produces a single completion record and no polling. Otherwise
    each tick waits for the poll interval (or cancellation, whichever comes
    first), re-fetches the pipeline and its steps, and emits records to the
    sink. Fetch errors end the loop at once.

    Example:
        loop = MonitorLoop(client, emit=lambda r: print(r.to_text()))
        result = loop.watch(pipeline_id)

    Cancel from another thread or a signal handler:
        loop.cancel()
    """

    def __init__(
        self,
        client: PipelineSource,
        emit: Optional[RecordSink] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cancel_event: Optional[threading.Event] = None,
        analyzer: Optional[LogAnalyzer] = None,
        follower: Optional[LogFollower] = None,
    ):
        """Initialize the MonitorLoop.

        Args:
            client: Source of pipeline and step records (and log streams
                when following).
            emit: Receives every record as it is produced. Defaults to
                logging each record's text.
            poll_interval: Seconds between polls.
            cancel_event: Event that stops the loop when set. Created if
                not provided.
            analyzer: LogAnalyzer for follow mode. Created lazily.
            follower: LogFollower for follow mode. Created lazily.
        """
        self._client = client
        self._emit = emit or _log_record
        self._poll_interval = poll_interval
        self._cancel_event = cancel_event or threading.Event()
        self._analyzer = analyzer
        self._follower = follower

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    def cancel(self) -> None:
        """Request the loop to stop at the next tick boundary."""
        self._cancel_event.set()

    def _get_analyzer(self) -> LogAnalyzer:
        if self._analyzer is None:
            self._analyzer = LogAnalyzer()
        return self._analyzer

    def _get_follower(self) -> LogFollower:
        if self._follower is None:
            self._follower = LogFollower(self._client, cancel_event=self._cancel_event)
        return self._follower

    def watch(self, pipeline_id: str) -> WatchResult:
        """Poll a pipeline until it reaches a terminal state.

        Raises:
            FetchFailedError: If any fetch fails.
        """
        return self._run(pipeline_id, follow=None)

    def follow(
        self,
        pipeline_id: str,
        options: Optional[FollowOptions] = None,
    ) -> WatchResult:
        """Like watch(), additionally streaming each newly observed step's log.

        Raises:
            FetchFailedError: If fetching the pipeline or its steps fails.
        """
        return self._run(pipeline_id, follow=options or FollowOptions())

    def _run(self, pipeline_id: str, follow: Optional[FollowOptions]) -> WatchResult:
        session = WatchSession(pipeline_id=pipeline_id, poll_interval=self._poll_interval)

        pipeline = self._fetch_pipeline(session)
        session.record_state(pipeline.state)

        if pipeline.state.is_terminal:
            session.phase = MonitorPhase.COMPLETED
            self._emit(WatchCompletion(pipeline=pipeline, already_terminal=True))
            return WatchResult(
                outcome=WatchOutcome.COMPLETED,
                pipeline=pipeline,
                already_terminal=True,
            )

        session.phase = MonitorPhase.POLLING
        logger.info(
            "Watching pipeline #%d (%s), polling every %ss",
            pipeline.build_number,
            pipeline.state.value,
            self._poll_interval,
        )

        analyses: list[StepAnalysis] = []
        while True:
            if self._cancel_event.wait(self._poll_interval):
                return self._finish_cancelled(session, pipeline, analyses)

            pipeline, steps = self._poll(session)
            session.polls += 1
            self._emit(self._build_update(pipeline, steps))

            previous = session.record_state(pipeline.state)
            if previous is not None:
                self._emit(
                    StateChange(
                        timestamp=datetime.now(),
                        build_number=pipeline.build_number,
                        previous=previous,
                        current=pipeline.state,
                    )
                )

            if follow is not None:
                analyses.extend(self._follow_steps(session, steps, follow))
                if self._cancel_event.is_set():
                    return self._finish_cancelled(session, pipeline, analyses)

            if pipeline.state.is_terminal:
                session.phase = MonitorPhase.COMPLETED
                self._emit(WatchCompletion(pipeline=pipeline))
                logger.info(
                    "Pipeline #%d finished as %s after %d polls",
                    pipeline.build_number,
                    pipeline.state.value,
                    session.polls,
                )
                return WatchResult(
                    outcome=WatchOutcome.COMPLETED,
                    pipeline=pipeline,
                    polls=session.polls,
                    state_changes=session.state_changes,
                    step_analyses=analyses,
                )

    def _fetch_pipeline(self, session: WatchSession) -> Pipeline:
        try:
            return self._client.get_pipeline(session.pipeline_id)
        except PipelineAPIError as e:
            session.phase = MonitorPhase.FAILED
            raise FetchFailedError(session.pipeline_id, session.polls, str(e)) from e

    def _poll(self, session: WatchSession) -> tuple[Pipeline, list[PipelineStep]]:
        pipeline = self._fetch_pipeline(session)
        try:
            steps = self._client.list_steps(session.pipeline_id)
        except PipelineAPIError as e:
            session.phase = MonitorPhase.FAILED
            raise FetchFailedError(session.pipeline_id, session.polls, str(e)) from e
        return pipeline, steps

    @staticmethod
    def _build_update(pipeline: Pipeline, steps: list[PipelineStep]) -> WatchUpdate:
        return WatchUpdate(
            timestamp=datetime.now(),
            build_number=pipeline.build_number,
            state=pipeline.state,
            elapsed_seconds=pipeline.elapsed_seconds(),
            active_steps=[s.name for s in steps if s.state is PipelineState.IN_PROGRESS],
            completed_steps=sum(1 for s in steps if s.state.is_terminal),
            total_steps=len(steps),
        )

    def _finish_cancelled(
        self,
        session: WatchSession,
        pipeline: Pipeline,
        analyses: list[StepAnalysis],
    ) -> WatchResult:
        session.phase = MonitorPhase.CANCELLED
        logger.info("Watch of pipeline #%d cancelled after %d polls", pipeline.build_number, session.polls)
        self._emit(
            WatchCancelled(build_number=pipeline.build_number, last_state=session.previous_state)
        )
        return WatchResult(
            outcome=WatchOutcome.CANCELLED,
            pipeline=pipeline,
            polls=session.polls,
            state_changes=session.state_changes,
            step_analyses=analyses,
        )

    # -------------------- Follow mode --------------------

    def _follow_steps(
        self,
        session: WatchSession,
        steps: list[PipelineStep],
        options: FollowOptions,
    ) -> list[StepAnalysis]:
        candidates = steps
        if options.step_name:
            chosen = select_step(steps, options.step_name)
            candidates = [chosen] if chosen else []

        analyses = []
        for step in candidates:
            # Pending steps have no log yet; their fingerprint is recorded once they start
            if step.state is PipelineState.PENDING:
                continue
            if not session.first_sighting(step):
                continue
            if self._cancel_event.is_set():
                break
            analysis = self._stream_step(session.pipeline_id, step, options)
            if analysis is not None:
                analyses.append(analysis)
        return analyses

    def _stream_step(
        self, pipeline_id: str, step: PipelineStep, options: FollowOptions
    ) -> Optional[StepAnalysis]:
        analyzer = self._get_analyzer()
        self._emit(StepStreamStarted(step_name=step.name, state=step.state))

        def on_line(line: str) -> None:
            flagged = analyzer.is_error_line(line)
            if flagged or not options.errors_only:
                self._emit(StepLogLine(step_name=step.name, line=line, flagged=flagged))

        stream = self._get_follower().follow(pipeline_id, step.uuid, on_line=on_line)
        if stream.cancelled:
            return None
        if stream.error is not None:
            self._emit(StepStreamError(step_name=step.name, step_id=step.uuid, message=stream.error))
            if not stream.lines:
                return None

        analysis = analyzer.analyze(stream.lines, context_lines=options.context_lines)
        if options.errors_only:
            analysis = analysis.filter_errors_only()
        record = StepAnalysis(step_name=step.name, step_id=step.uuid, analysis=analysis)
        self._emit(record)
        return record
