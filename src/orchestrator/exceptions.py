"""Exceptions for the orchestrator module."""


class DiagnosticsError(Exception):
    """Base exception for diagnostics runs."""

    pass


class StepNotFoundError(DiagnosticsError):
    """Raised when the step filter matches no step of the pipeline."""

    def __init__(self, requested: str, available: list[str]):
        self.requested = requested
        self.available = available
        msg = f"No step matching '{requested}'"
        if available:
            msg += f". Available steps: {', '.join(available)}"
        else:
            msg += ". The pipeline has no steps"
        super().__init__(msg)
