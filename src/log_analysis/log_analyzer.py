"""LogAnalyzer - classifies CI log lines into errors and warnings."""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Union

from .models import (
    Category,
    ErrorPattern,
    ExtractedError,
    LogAnalysisResult,
    PatternTable,
    Severity,
)
from .patterns import DEFAULT_PATTERNS

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LINES = 3
MAX_CONTEXT_LINES = 10

LogLine = Union[str, bytes]
LogSource = Union[str, bytes, Iterable[LogLine]]


def _decode(line: LogLine) -> str:
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    return line.rstrip("\r\n")


def _clamp_context(context_lines: int) -> int:
    return min(max(0, context_lines), MAX_CONTEXT_LINES)


def iter_log_lines(source: LogSource) -> Iterator[str]:
    """Yield decoded lines from a whole log or an iterable of lines.

    Only line feeds end a line, so carriage returns from progress output
    stay inside the line they belong to. Undecodable bytes become U+FFFD
    instead of raising.
    """
    if isinstance(source, bytes):
        source = source.decode("utf-8", errors="replace")
    if isinstance(source, str):
        lines = source.split("\n")
        if lines[-1] == "":
            lines.pop()
        for line in lines:
            yield line.rstrip("\r")
        return
    for line in source:
        yield _decode(line)


@dataclass
class _OpenError:
    """An error still collecting its following context lines."""

    line_number: int
    pattern: ErrorPattern
    content: str
    preceding: list[str]
    following: list[str] = field(default_factory=list)

    def freeze(self) -> ExtractedError:
        return ExtractedError(
            line_number=self.line_number,
            category=self.pattern.category,
            severity=self.pattern.severity,
            content=self.content,
            pattern_name=self.pattern.name,
            context=tuple(self.preceding + self.following),
        )


class AnalysisSession:
    """Incremental analysis of a single log stream.

    Lines are fed one at a time, so the same session serves archived logs
    and lines arriving from a live stream. Errors near the end of the
    stream keep whatever following context arrived before finish().
    """

    def __init__(self, patterns: PatternTable, context_lines: int):
        self._patterns = patterns
        self._context_lines = _clamp_context(context_lines)
        self._window: deque[str] = deque(maxlen=self._context_lines)
        self._open: list[_OpenError] = []
        self._errors: list[_OpenError] = []
        self._summary: dict[Category, int] = {}
        self._total_lines = 0
        self._warning_count = 0

    @property
    def total_lines(self) -> int:
        return self._total_lines

    def feed(self, line: LogLine) -> Optional[ErrorPattern]:
        """Consume one line.

        Returns:
            The pattern the line matched, or None for plain text.
        """
        text = _decode(line)
        self._total_lines += 1

        if self._open:
            for pending in self._open:
                pending.following.append(text)
            self._open = [p for p in self._open if len(p.following) < self._context_lines]

        pattern = self._patterns.first_match(text)
        if pattern is not None:
            if pattern.severity is Severity.WARNING:
                self._warning_count += 1
            elif pattern.severity.is_error:
                entry = _OpenError(
                    line_number=self._total_lines,
                    pattern=pattern,
                    content=text.strip(),
                    preceding=list(self._window),
                )
                self._errors.append(entry)
                self._summary[pattern.category] = self._summary.get(pattern.category, 0) + 1
                if self._context_lines:
                    self._open.append(entry)

        self._window.append(text)
        return pattern

    def finish(self) -> LogAnalysisResult:
        """Close the session and build the immutable result."""
        errors = sorted((e.freeze() for e in self._errors), key=lambda e: e.line_number)
        self._open = []
        return LogAnalysisResult(
            total_lines=self._total_lines,
            error_count=len(errors),
            warning_count=self._warning_count,
            errors=tuple(errors),
            summary=dict(self._summary),
        )


class LogAnalyzer:
    """Finds errors and warnings in CI logs using an ordered pattern table.

    The pattern table is an immutable value, so analyzers for different
    steps can run side by side without sharing state.

    Example usage:
        analyzer = LogAnalyzer(context_lines=2)
        result = analyzer.analyze(log_text)
        for error in result.errors:
            print(f"{error.line_number}: [{error.category.value}] {error.content}")

    With a custom pattern taking priority:
        table = DEFAULT_PATTERNS.with_pattern(
            ErrorPattern.compile("flaky", r"flaky", Category.TEST, Severity.WARNING)
        )
        analyzer = LogAnalyzer(patterns=table)
    """

    def __init__(
        self,
        patterns: PatternTable = DEFAULT_PATTERNS,
        context_lines: int = DEFAULT_CONTEXT_LINES,
    ):
        """Initialize the LogAnalyzer.

        Args:
            patterns: Ordered pattern table. Defaults to DEFAULT_PATTERNS.
            context_lines: Lines of context kept before and after each
                error. Clamped to the range 0..MAX_CONTEXT_LINES.
        """
        self._patterns = patterns
        self._context_lines = _clamp_context(context_lines)

    @property
    def patterns(self) -> PatternTable:
        return self._patterns

    @property
    def context_lines(self) -> int:
        return self._context_lines

    def classify(self, line: LogLine) -> Optional[ErrorPattern]:
        """Return the first pattern matching a single line, if any."""
        return self._patterns.first_match(_decode(line))

    def is_error_line(self, line: LogLine) -> bool:
        """Whether a line would be reported as an error or critical entry."""
        pattern = self.classify(line)
        return pattern is not None and pattern.severity.is_error

    def start_session(self, context_lines: Optional[int] = None) -> AnalysisSession:
        """Begin incremental analysis of a stream."""
        if context_lines is None:
            context_lines = self._context_lines
        return AnalysisSession(self._patterns, context_lines)

    def analyze(
        self, source: LogSource, context_lines: Optional[int] = None
    ) -> LogAnalysisResult:
        """Analyze a complete log.

        Args:
            source: Log text, raw bytes, or an iterable of lines.
            context_lines: Overrides the analyzer's context size.

        Returns:
            LogAnalysisResult with errors ordered by line number. An empty
            source yields a zero-valued result.
        """
        session = self.start_session(context_lines)
        for line in iter_log_lines(source):
            session.feed(line)
        result = session.finish()
        logger.debug(
            "Analyzed %d lines: %d errors, %d warnings",
            result.total_lines,
            result.error_count,
            result.warning_count,
        )
        return result
