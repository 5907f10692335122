"""Unit tests for MonitorLoop watch and follow."""

import threading
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from src.bitbucket import Pipeline, PipelineAPIError, PipelineState, PipelineStep
from src.monitor import (
    FetchFailedError,
    FollowOptions,
    LogFollower,
    MonitorLoop,
    StateChange,
    StepAnalysis,
    StepLogLine,
    StepStreamError,
    StepStreamStarted,
    WatchCancelled,
    WatchCompletion,
    WatchOutcome,
    WatchUpdate,
    format_duration,
)

PIPELINE_ID = "{p-1}"


def _make_pipeline(state: PipelineState) -> Pipeline:
    return Pipeline(uuid=PIPELINE_ID, build_number=42, state=state)


def _make_step(uuid: str, name: str, state: PipelineState) -> PipelineStep:
    return PipelineStep(uuid=uuid, name=name, state=state)


def _make_client(pipelines, steps=None, logs=None) -> MagicMock:
    client = MagicMock()
    client.get_pipeline.side_effect = list(pipelines)
    client.list_steps.side_effect = list(steps) if steps is not None else None
    if steps is None:
        client.list_steps.return_value = []
    logs = logs or {}
    client.stream_step_log.side_effect = lambda pipeline_id, step_id: iter(logs.get(step_id, []))
    return client


def _make_loop(client, records, cancel_event=None) -> MonitorLoop:
    cancel_event = cancel_event or threading.Event()
    return MonitorLoop(
        client,
        emit=records.append,
        poll_interval=0,
        cancel_event=cancel_event,
        follower=LogFollower(client, cancel_event=cancel_event, poll_timeout=0.01),
    )


def _of_type(records, record_type):
    return [r for r in records if isinstance(r, record_type)]


class TestWatch:
    def test_terminal_pipeline_fetched_once(self):
        client = _make_client([_make_pipeline(PipelineState.FAILED)])
        records = []

        result = _make_loop(client, records).watch(PIPELINE_ID)

        assert client.get_pipeline.call_count == 1
        client.list_steps.assert_not_called()
        assert result.outcome == WatchOutcome.COMPLETED
        assert result.already_terminal is True
        assert result.polls == 0
        assert len(records) == 1
        assert isinstance(records[0], WatchCompletion)
        assert records[0].already_terminal is True

    def test_two_transitions_give_two_state_changes(self):
        client = _make_client(
            [
                _make_pipeline(PipelineState.PENDING),
                _make_pipeline(PipelineState.IN_PROGRESS),
                _make_pipeline(PipelineState.FAILED),
            ],
            steps=[[], []],
        )
        records = []

        result = _make_loop(client, records).watch(PIPELINE_ID)

        changes = _of_type(records, StateChange)
        assert [(c.previous, c.current) for c in changes] == [
            (PipelineState.PENDING, PipelineState.IN_PROGRESS),
            (PipelineState.IN_PROGRESS, PipelineState.FAILED),
        ]
        assert len(_of_type(records, WatchUpdate)) == 2
        assert isinstance(records[-1], WatchCompletion)
        assert result.state_changes == 2
        assert result.polls == 2
        assert result.pipeline.state == PipelineState.FAILED

    def test_unchanged_state_emits_no_state_change(self):
        client = _make_client(
            [
                _make_pipeline(PipelineState.IN_PROGRESS),
                _make_pipeline(PipelineState.IN_PROGRESS),
                _make_pipeline(PipelineState.SUCCESSFUL),
            ],
            steps=[[], []],
        )
        records = []

        _make_loop(client, records).watch(PIPELINE_ID)

        assert len(_of_type(records, StateChange)) == 1

    def test_update_reports_active_steps(self):
        steps = [
            _make_step("{s1}", "Build", PipelineState.SUCCESSFUL),
            _make_step("{s2}", "Test", PipelineState.IN_PROGRESS),
            _make_step("{s3}", "Deploy", PipelineState.PENDING),
        ]
        client = _make_client(
            [_make_pipeline(PipelineState.IN_PROGRESS), _make_pipeline(PipelineState.FAILED)],
            steps=[steps],
        )
        records = []

        _make_loop(client, records).watch(PIPELINE_ID)

        update = _of_type(records, WatchUpdate)[0]
        assert update.active_steps == ["Test"]
        assert update.completed_steps == 1
        assert update.total_steps == 3
        assert "🔄 Test [1/3 steps]" in update.to_text()

    def test_fetch_error_ends_watch_without_retry(self):
        client = _make_client(
            [_make_pipeline(PipelineState.IN_PROGRESS), PipelineAPIError("timeout")]
        )
        records = []

        with pytest.raises(FetchFailedError) as exc_info:
            _make_loop(client, records).watch(PIPELINE_ID)

        assert client.get_pipeline.call_count == 2
        assert exc_info.value.polls == 0
        assert "timeout" in str(exc_info.value)

    def test_initial_fetch_error(self):
        client = _make_client([PipelineAPIError("denied")])

        with pytest.raises(FetchFailedError):
            _make_loop(client, []).watch(PIPELINE_ID)

    def test_steps_fetch_error(self):
        client = _make_client(
            [_make_pipeline(PipelineState.IN_PROGRESS), _make_pipeline(PipelineState.IN_PROGRESS)]
        )
        client.list_steps.side_effect = PipelineAPIError("boom")

        with pytest.raises(FetchFailedError):
            _make_loop(client, []).watch(PIPELINE_ID)

    def test_cancel_stops_at_tick_boundary(self):
        client = _make_client([_make_pipeline(PipelineState.IN_PROGRESS)])
        cancel = threading.Event()
        cancel.set()
        records = []

        result = _make_loop(client, records, cancel_event=cancel).watch(PIPELINE_ID)

        assert result.cancelled is True
        assert result.polls == 0
        assert client.get_pipeline.call_count == 1
        assert isinstance(records[-1], WatchCancelled)
        assert records[-1].last_state == PipelineState.IN_PROGRESS

    def test_cancel_method_sets_event(self):
        loop = MonitorLoop(MagicMock(), emit=lambda r: None)

        loop.cancel()

        assert loop.cancel_event.is_set()


class TestFollow:
    def test_streams_each_step_observation_once(self):
        running = [
            _make_step("{s1}", "Build", PipelineState.IN_PROGRESS),
            _make_step("{s2}", "Test", PipelineState.PENDING),
        ]
        finished = [
            _make_step("{s1}", "Build", PipelineState.IN_PROGRESS),
            _make_step("{s2}", "Test", PipelineState.FAILED),
        ]
        client = _make_client(
            [
                _make_pipeline(PipelineState.IN_PROGRESS),
                _make_pipeline(PipelineState.IN_PROGRESS),
                _make_pipeline(PipelineState.IN_PROGRESS),
                _make_pipeline(PipelineState.FAILED),
            ],
            steps=[running, running, finished],
            logs={"{s1}": ["compiling"], "{s2}": ["running tests", "test_login failed"]},
        )
        records = []

        result = _make_loop(client, records).follow(PIPELINE_ID)

        streamed = [call.args[1] for call in client.stream_step_log.call_args_list]
        assert streamed == ["{s1}", "{s2}"]
        assert [r.step_name for r in _of_type(records, StepStreamStarted)] == ["Build", "Test"]
        assert len(result.step_analyses) == 2
        test_analysis = result.step_analyses[1].analysis
        assert test_analysis.error_count == 1

    def test_lines_flagged_and_errors_only(self):
        client = _make_client(
            [_make_pipeline(PipelineState.IN_PROGRESS), _make_pipeline(PipelineState.FAILED)],
            steps=[[_make_step("{s1}", "Build", PipelineState.FAILED)]],
            logs={"{s1}": ["INFO: start", "warning: slow", "error: compile failed"]},
        )
        records = []

        _make_loop(client, records).follow(PIPELINE_ID, FollowOptions(errors_only=True))

        lines = _of_type(records, StepLogLine)
        assert [line.line for line in lines] == ["error: compile failed"]
        assert lines[0].flagged is True
        assert lines[0].to_text().startswith("❌")
        analysis = _of_type(records, StepAnalysis)[0].analysis
        assert analysis.error_count == 1
        assert analysis.warning_count == 1

    def test_step_filter_selects_first_match(self):
        steps = [
            _make_step("{s1}", "Lint", PipelineState.SUCCESSFUL),
            _make_step("{s2}", "Unit tests", PipelineState.FAILED),
            _make_step("{s3}", "Integration tests", PipelineState.FAILED),
        ]
        client = _make_client(
            [_make_pipeline(PipelineState.IN_PROGRESS), _make_pipeline(PipelineState.FAILED)],
            steps=[steps],
        )
        records = []

        _make_loop(client, records).follow(PIPELINE_ID, FollowOptions(step_name="tests"))

        streamed = [call.args[1] for call in client.stream_step_log.call_args_list]
        assert streamed == ["{s2}"]

    def test_stream_error_is_reported(self):
        client = _make_client(
            [_make_pipeline(PipelineState.IN_PROGRESS), _make_pipeline(PipelineState.FAILED)],
            steps=[[_make_step("{s1}", "Build", PipelineState.FAILED)]],
        )
        client.stream_step_log.side_effect = PipelineAPIError("log gone")
        records = []

        result = _make_loop(client, records).follow(PIPELINE_ID)

        errors = _of_type(records, StepStreamError)
        assert len(errors) == 1
        assert "log gone" in errors[0].message
        assert result.step_analyses == []
        assert result.outcome == WatchOutcome.COMPLETED

    def test_terminal_pipeline_does_not_stream(self):
        client = _make_client([_make_pipeline(PipelineState.SUCCESSFUL)])

        result = _make_loop(client, []).follow(PIPELINE_ID)

        assert result.already_terminal is True
        client.stream_step_log.assert_not_called()


class TestRecords:
    @pytest.mark.parametrize(
        "seconds,expected",
        [(0, "0s"), (45, "45s"), (125, "2m 5s"), (3600, "1h 0m"), (3780, "1h 3m")],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected

    def test_update_text(self):
        update = WatchUpdate(
            timestamp=datetime(2025, 1, 1, 9, 5, 7),
            build_number=42,
            state=PipelineState.IN_PROGRESS,
            elapsed_seconds=125,
            active_steps=["Build", "Lint"],
            completed_steps=1,
            total_steps=4,
        )

        assert update.to_text() == (
            "[09:05:07] 🔄 Pipeline #42: IN_PROGRESS (2m 5s) | 🔄 Build, Lint [1/4 steps]"
        )
        assert update.to_dict()["type"] == "update"

    def test_state_change_text(self):
        change = StateChange(
            timestamp=datetime(2025, 1, 1, 9, 0, 0),
            build_number=42,
            previous=PipelineState.IN_PROGRESS,
            current=PipelineState.FAILED,
        )

        assert change.to_text().endswith("state changed: IN_PROGRESS → FAILED")
