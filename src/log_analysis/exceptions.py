"""Custom exceptions for the log_analysis module."""


class LogAnalysisError(Exception):
    """Base exception for log analysis errors.

    Analysis itself never raises on log content; these cover invalid
    configuration only.
    """

    pass


class InvalidPatternError(LogAnalysisError):
    """A custom error pattern could not be compiled.

    Attributes:
        name: Name of the offending pattern.
        expression: The regular expression that failed to compile.
    """

    def __init__(self, name: str, expression: str, reason: str):
        self.name = name
        self.expression = expression
        super().__init__(f"Invalid pattern '{name}' ({expression!r}): {reason}")
