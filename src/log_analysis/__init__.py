"""Log analysis for CI step output.

Classifies log lines with an ordered, first-match-wins pattern table and
extracts errors with surrounding context.

Public API:
    - LogAnalyzer: Main class for analyzing logs
    - AnalysisSession: Incremental analysis of a live stream
    - LogAnalysisResult: Result of analyzing one log
    - ExtractedError: An error line with its context
    - ErrorPattern / PatternTable: Pattern configuration
    - DEFAULT_PATTERNS: Built-in pattern table

Example:
    from src.log_analysis import LogAnalyzer

    result = LogAnalyzer(context_lines=1).analyze(log_text)
    print(result.error_count, result.summary)
"""

from .exceptions import InvalidPatternError, LogAnalysisError
from .log_analyzer import (
    DEFAULT_CONTEXT_LINES,
    MAX_CONTEXT_LINES,
    AnalysisSession,
    LogAnalyzer,
    iter_log_lines,
)
from .models import (
    Category,
    ErrorPattern,
    ExtractedError,
    LogAnalysisResult,
    PatternTable,
    Severity,
)
from .patterns import DEFAULT_PATTERNS

__all__ = [
    # Main classes
    "LogAnalyzer",
    "AnalysisSession",
    "iter_log_lines",
    "DEFAULT_CONTEXT_LINES",
    "MAX_CONTEXT_LINES",
    "DEFAULT_PATTERNS",
    # Models
    "Category",
    "ErrorPattern",
    "ExtractedError",
    "LogAnalysisResult",
    "PatternTable",
    "Severity",
    # Exceptions
    "LogAnalysisError",
    "InvalidPatternError",
]
