"""Diagnostics orchestrator.

Connects PipelineIdentifierResolver, PipelineClient, LogAnalyzer,
TestResultFallback and MonitorLoop into static reports and live sessions,
with per-step error isolation and structured results.
"""

from .exceptions import DiagnosticsError, StepNotFoundError
from .formatting import NO_ERRORS_MESSAGE, format_plain_text
from .models import DiagnoseOptions, DiagnosisSource, PipelineDiagnosis, StepDiagnosis
from .pipeline import DiagnosticsOrchestrator

__all__ = [
    # Main classes
    "DiagnosticsOrchestrator",
    "format_plain_text",
    "NO_ERRORS_MESSAGE",
    # Models
    "DiagnoseOptions",
    "DiagnosisSource",
    "PipelineDiagnosis",
    "StepDiagnosis",
    # Exceptions
    "DiagnosticsError",
    "StepNotFoundError",
]
