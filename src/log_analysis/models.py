"""Data models for the log_analysis module."""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator, Optional

from .exceptions import InvalidPatternError


class Category(Enum):
    """What kind of failure a log line points at."""

    BUILD = "build"
    TEST = "test"
    CONTAINER = "container"
    RUNTIME = "runtime"
    NETWORK = "network"
    GENERIC = "generic"


class Severity(Enum):
    """How serious a matched line is."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def is_error(self) -> bool:
        """Whether matches of this severity are reported as errors."""
        return self in (Severity.ERROR, Severity.CRITICAL)


@dataclass(frozen=True)
class ErrorPattern:
    """One entry of the ordered pattern table.

    Attributes:
        name: Short identifier, e.g. ``compilation_failure``.
        category: Category assigned to matching lines.
        severity: Severity assigned to matching lines.
        regex: Compiled, case-insensitive expression searched in each line.
        description: Human-readable explanation.
    """

    name: str
    category: Category
    severity: Severity
    regex: re.Pattern
    description: str = ""

    def matches(self, line: str) -> bool:
        return self.regex.search(line) is not None

    @classmethod
    def compile(
        cls,
        name: str,
        expression: str,
        category: Category,
        severity: Severity,
        description: str = "",
    ) -> "ErrorPattern":
        """Build a pattern from a regular expression string.

        Raises:
            InvalidPatternError: If the expression does not compile.
        """
        try:
            regex = re.compile(expression, re.IGNORECASE)
        except re.error as e:
            raise InvalidPatternError(name, expression, str(e)) from e
        return cls(
            name=name,
            category=category,
            severity=severity,
            regex=regex,
            description=description,
        )


@dataclass(frozen=True)
class PatternTable:
    """Immutable, ordered decision list of error patterns.

    The first pattern that matches a line decides its classification.
    """

    patterns: tuple[ErrorPattern, ...] = ()

    def __iter__(self) -> Iterator[ErrorPattern]:
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)

    def first_match(self, line: str) -> Optional[ErrorPattern]:
        for pattern in self.patterns:
            if pattern.matches(line):
                return pattern
        return None

    def with_pattern(self, pattern: ErrorPattern) -> "PatternTable":
        """Return a new table with ``pattern`` evaluated before all others."""
        return PatternTable(patterns=(pattern,) + self.patterns)

    def by_category(self, category: Category) -> tuple[ErrorPattern, ...]:
        return tuple(p for p in self.patterns if p.category == category)

    @property
    def categories(self) -> list[Category]:
        """Categories present in the table, in order of first appearance."""
        seen: list[Category] = []
        for pattern in self.patterns:
            if pattern.category not in seen:
                seen.append(pattern.category)
        return seen


@dataclass(frozen=True)
class ExtractedError:
    """An error or critical line found in a log.

    Attributes:
        line_number: 1-based position of the line in the log.
        category: Category of the matching pattern.
        severity: Severity of the matching pattern.
        content: The flagged line, stripped of surrounding whitespace.
        pattern_name: Name of the pattern that matched.
        context: Raw lines before and after the flagged line, in log order.
            The flagged line itself is not repeated here.
    """

    line_number: int
    category: Category
    severity: Severity
    content: str
    pattern_name: str
    context: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "line_number": self.line_number,
            "category": self.category.value,
            "severity": self.severity.value,
            "content": self.content,
            "pattern": self.pattern_name,
            "context": list(self.context),
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LogAnalysisResult:
    """Outcome of analyzing one log.

    Attributes:
        total_lines: Number of lines read.
        error_count: Number of error/critical lines.
        warning_count: Number of warning lines.
        errors: Extracted errors ordered by line number.
        summary: Error count per category.
        processed_at: When the analysis finished. Not part of equality.
    """

    total_lines: int = 0
    error_count: int = 0
    warning_count: int = 0
    errors: tuple[ExtractedError, ...] = ()
    summary: dict[Category, int] = field(default_factory=dict)
    processed_at: datetime = field(default_factory=_utcnow, compare=False)

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    def filter_errors_only(self) -> "LogAnalysisResult":
        """Derive a result holding only error and critical entries.

        Line, warning and category counts are carried over unchanged, so
        applying this repeatedly gives the same result.
        """
        kept = tuple(e for e in self.errors if e.severity.is_error)
        return replace(self, errors=kept, error_count=len(kept), summary=dict(self.summary))

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_lines": self.total_lines,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "errors": [e.to_dict() for e in self.errors],
            "summary": {category.value: count for category, count in self.summary.items()},
            "processed_at": self.processed_at.isoformat(),
        }
