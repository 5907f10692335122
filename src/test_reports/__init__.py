"""Test-report diagnostics for pipeline steps.

When a step's log cannot be retrieved, its structured test reports are
the next best source of failure information.
"""

from .models import NO_DATA_MESSAGE, FailedTestCase, TestDiagnostics
from .test_result_fallback import DEFAULT_MAX_REASON_LOOKUPS, TestResultFallback

__all__ = [
    "TestResultFallback",
    "TestDiagnostics",
    "FailedTestCase",
    "NO_DATA_MESSAGE",
    "DEFAULT_MAX_REASON_LOOKUPS",
]
