"""Unit tests for LogAnalyzer and the default pattern table."""

import pytest

from src.log_analysis import (
    DEFAULT_PATTERNS,
    Category,
    ErrorPattern,
    InvalidPatternError,
    LogAnalysisResult,
    LogAnalyzer,
    MAX_CONTEXT_LINES,
    PatternTable,
    Severity,
    iter_log_lines,
)


def _numbered_log(count: int, error_at: int) -> str:
    lines = [f"line {i}" for i in range(1, count + 1)]
    lines[error_at - 1] = "error: compile failed"
    return "\n".join(lines) + "\n"


class TestScenarioCompileFailure:
    """The canonical three-line example with one line of context."""

    def test_single_build_error_with_both_neighbours(self):
        log = "INFO: start\nerror: compile failed\nINFO: done\n"

        result = LogAnalyzer().analyze(log, context_lines=1)

        assert result.total_lines == 3
        assert result.error_count == 1
        assert result.warning_count == 0
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.line_number == 2
        assert error.category == Category.BUILD
        assert error.severity == Severity.ERROR
        assert error.content == "error: compile failed"
        assert error.context == ("INFO: start", "INFO: done")
        assert result.summary == {Category.BUILD: 1}


class TestContextWindow:
    def test_centered_window_when_lines_on_both_sides(self):
        result = LogAnalyzer(context_lines=2).analyze(_numbered_log(9, error_at=5))

        error = result.errors[0]
        assert error.context == ("line 3", "line 4", "line 6", "line 7")

    def test_window_clipped_at_start_of_log(self):
        result = LogAnalyzer(context_lines=3).analyze(_numbered_log(6, error_at=1))

        assert result.errors[0].context == ("line 2", "line 3", "line 4")

    def test_partial_following_window_at_end_of_stream(self):
        result = LogAnalyzer(context_lines=3).analyze(_numbered_log(5, error_at=4))

        assert result.errors[0].context == ("line 1", "line 2", "line 3", "line 5")

    def test_context_never_exceeds_bound(self):
        for k in range(0, 5):
            result = LogAnalyzer().analyze(_numbered_log(20, error_at=10), context_lines=k)
            assert len(result.errors[0].context) + 1 <= 2 * k + 1

    def test_zero_context(self):
        result = LogAnalyzer(context_lines=0).analyze(_numbered_log(5, error_at=3))

        assert result.errors[0].context == ()

    def test_negative_context_treated_as_zero(self):
        analyzer = LogAnalyzer(context_lines=-4)

        assert analyzer.context_lines == 0
        assert analyzer.analyze(_numbered_log(5, error_at=3)).errors[0].context == ()

    def test_context_capped(self):
        analyzer = LogAnalyzer(context_lines=500)

        assert analyzer.context_lines == MAX_CONTEXT_LINES
        result = analyzer.analyze(_numbered_log(40, error_at=20))
        assert len(result.errors[0].context) == 2 * MAX_CONTEXT_LINES

    def test_per_call_context_capped(self):
        result = LogAnalyzer().analyze(_numbered_log(40, error_at=20), context_lines=50)

        assert result.errors[0].context[0] == "line 10"
        assert result.errors[0].context[-1] == "line 30"

    def test_per_call_override(self):
        analyzer = LogAnalyzer(context_lines=3)

        result = analyzer.analyze(_numbered_log(9, error_at=5), context_lines=1)

        assert result.errors[0].context == ("line 4", "line 6")

    def test_adjacent_errors_see_each_other_in_context(self):
        log = "a\nerror: compile failed\nnpm ERR! missing script\nb\n"

        result = LogAnalyzer(context_lines=1).analyze(log)

        assert [e.line_number for e in result.errors] == [2, 3]
        assert result.errors[0].context == ("a", "npm ERR! missing script")
        assert result.errors[1].context == ("error: compile failed", "b")


class TestClassification:
    @pytest.mark.parametrize(
        "line,name,category",
        [
            ("panic: runtime error: index out of range", "panic", Category.RUNTIME),
            ("Segmentation fault (core dumped)", "segmentation_fault", Category.RUNTIME),
            ("npm ERR! missing script: build", "npm_error", Category.BUILD),
            ("ModuleNotFoundError: No module named 'yaml'", "module_not_found", Category.BUILD),
            ("AssertionError: expected 3, got 4", "test_assertion", Category.TEST),
            ("Error response from daemon: manifest unknown", "image_not_found", Category.CONTAINER),
            ("Container was OOMKilled", "container_killed", Category.CONTAINER),
            ("curl: (7) Failed to connect to localhost", "connection_error", Category.NETWORK),
            ("Could not resolve host: github.com", "dns_error", Category.NETWORK),
            ("Process exited with code 2", "exit_code", Category.RUNTIME),
        ],
    )
    def test_representative_lines(self, line, name, category):
        pattern = LogAnalyzer().classify(line)

        assert pattern is not None
        assert pattern.name == name
        assert pattern.category == category

    def test_critical_outranks_later_patterns(self):
        pattern = LogAnalyzer().classify("fatal error: build failed")

        assert pattern.name == "fatal_error"
        assert pattern.severity == Severity.CRITICAL

    def test_matching_is_case_insensitive(self):
        assert LogAnalyzer().classify("BUILD FAILED").name == "build_failed"

    def test_plain_lines_do_not_match(self):
        analyzer = LogAnalyzer()

        assert analyzer.classify("INFO: start") is None
        assert analyzer.classify("Step 3/7 : RUN pip install .") is None
        assert analyzer.is_error_line("INFO: done") is False

    def test_warnings_are_counted_not_extracted(self):
        log = "warning: unused variable\nDeprecationWarning: foo is deprecated\nok\n"

        result = LogAnalyzer().analyze(log)

        assert result.warning_count == 2
        assert result.error_count == 0
        assert result.errors == ()
        assert result.summary == {}

    def test_is_error_line_excludes_warnings(self):
        analyzer = LogAnalyzer()

        assert analyzer.is_error_line("npm ERR! code ELIFECYCLE") is True
        assert analyzer.is_error_line("warning: something odd") is False

    def test_summary_counts_per_category(self):
        log = "\n".join(
            [
                "error: compile failed",
                "npm ERR! code 1",
                "Connection refused",
                "ok",
            ]
        )

        result = LogAnalyzer().analyze(log)

        assert result.summary == {Category.BUILD: 2, Category.NETWORK: 1}
        assert result.error_count == 3


class TestEdgeCases:
    def test_empty_input(self):
        result = LogAnalyzer().analyze("")

        assert result.total_lines == 0
        assert result.error_count == 0
        assert result.warning_count == 0
        assert result.errors == ()
        assert result.summary == {}

    def test_malformed_bytes_are_replaced(self):
        log = b"ok\nerror: compile \xff\xfe failed\n"

        result = LogAnalyzer().analyze(log)

        assert result.error_count == 1
        assert "�" in result.errors[0].content

    def test_iterable_of_lines(self):
        lines = [b"INFO: start\n", "error: compile failed\r\n", "INFO: done"]

        result = LogAnalyzer(context_lines=1).analyze(lines)

        assert result.total_lines == 3
        assert result.errors[0].context == ("INFO: start", "INFO: done")

    def test_errors_ordered_by_line(self):
        log = "npm ERR! a\nx\nConnection refused\ny\npanic: boom\n"

        result = LogAnalyzer().analyze(log)

        numbers = [e.line_number for e in result.errors]
        assert numbers == sorted(numbers) == [1, 3, 5]

    def test_content_is_stripped_but_context_is_raw(self):
        log = "   indented  \n   error: compile failed   \n"

        result = LogAnalyzer(context_lines=1).analyze(log)

        assert result.errors[0].content == "error: compile failed"
        assert result.errors[0].context == ("   indented  ",)

    def test_carriage_returns_do_not_start_new_lines(self):
        log = "Downloading 10%\rDownloading 50%\rDownloading 100%\nerror: compile failed\n"

        result = LogAnalyzer().analyze(log, context_lines=1)

        assert result.total_lines == 2
        assert result.errors[0].line_number == 2
        assert result.errors[0].context == ("Downloading 10%\rDownloading 50%\rDownloading 100%",)

    def test_only_line_feeds_split_text(self):
        assert list(iter_log_lines("a\x0cb c\r\nd\n")) == ["a\x0cb c", "d"]
        assert list(iter_log_lines("")) == []
        assert list(iter_log_lines("\n")) == [""]

    def test_iter_log_lines_splits_text(self):
        assert list(iter_log_lines("a\r\nb\nc")) == ["a", "b", "c"]


class TestPurity:
    def test_same_input_gives_equal_results(self):
        log = _numbered_log(12, error_at=6)
        analyzer = LogAnalyzer()

        first = analyzer.analyze(log)
        second = analyzer.analyze(log)

        assert first == second

    def test_processed_at_is_not_compared(self):
        a = LogAnalysisResult(total_lines=1)
        b = LogAnalysisResult(total_lines=1)

        assert a == b


class TestFilterErrorsOnly:
    def test_idempotent(self):
        log = "warning: a\nerror: compile failed\npanic: b\nwarning: c\n"
        result = LogAnalyzer().analyze(log)

        once = result.filter_errors_only()
        twice = once.filter_errors_only()

        assert once == twice
        assert once.error_count == 2
        assert once.warning_count == result.warning_count

    def test_info_matches_are_neither_counted_nor_extracted(self):
        info = ErrorPattern.compile("note", r"^note:", Category.GENERIC, Severity.INFO)
        table = PatternTable(patterns=(info,))
        result = LogAnalyzer(patterns=table).analyze("note: hello\n")

        assert result.error_count == 0
        assert result.warning_count == 0
        assert result.filter_errors_only().errors == ()


class TestPatternTable:
    def test_default_table_is_ordered_and_nonempty(self):
        names = [p.name for p in DEFAULT_PATTERNS]

        assert names[0] == "panic"
        assert names[-1] == "generic_error"
        assert len(DEFAULT_PATTERNS) == len(set(names))

    def test_custom_pattern_takes_priority(self):
        flaky = ErrorPattern.compile(
            "flaky", r"test.*failed", Category.TEST, Severity.WARNING, "Known flaky test"
        )
        analyzer = LogAnalyzer(patterns=DEFAULT_PATTERNS.with_pattern(flaky))

        result = analyzer.analyze("test_login failed\n")

        assert result.error_count == 0
        assert result.warning_count == 1

    def test_with_pattern_leaves_original_untouched(self):
        extra = ErrorPattern.compile("x", r"x", Category.GENERIC, Severity.ERROR)

        extended = DEFAULT_PATTERNS.with_pattern(extra)

        assert len(extended) == len(DEFAULT_PATTERNS) + 1
        assert extended.patterns[0] is extra
        assert extra not in DEFAULT_PATTERNS.patterns

    def test_invalid_expression_raises(self):
        with pytest.raises(InvalidPatternError) as exc_info:
            ErrorPattern.compile("broken", r"(unclosed", Category.BUILD, Severity.ERROR)

        assert exc_info.value.name == "broken"

    def test_categories_in_table_order(self):
        assert DEFAULT_PATTERNS.categories[0] == Category.RUNTIME
        assert set(DEFAULT_PATTERNS.categories) == set(Category)

    def test_by_category(self):
        network = DEFAULT_PATTERNS.by_category(Category.NETWORK)

        assert {p.name for p in network} == {"connection_error", "dns_error", "http_error"}


class TestAnalysisSession:
    def test_incremental_feed_matches_batch(self):
        log = "INFO: start\nerror: compile failed\nINFO: done\n"
        analyzer = LogAnalyzer(context_lines=1)

        session = analyzer.start_session()
        matched = [session.feed(line) for line in log.splitlines()]
        streamed = session.finish()

        assert matched[0] is None
        assert matched[1].name == "compilation_failure"
        assert streamed == analyzer.analyze(log)
        assert session.total_lines == 3
