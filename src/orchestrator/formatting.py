"""Plain-text rendering of a PipelineDiagnosis."""

from src.log_analysis import ExtractedError
from src.monitor import format_duration
from src.test_reports import TestDiagnostics

from .models import PipelineDiagnosis, StepDiagnosis

NO_ERRORS_MESSAGE = "No errors found"


def _format_error(error: ExtractedError) -> list[str]:
    lines = [
        f"  ❌ line {error.line_number} [{error.category.value}/{error.severity.value}] "
        f"{error.content}"
    ]
    lines.extend(f"       {context}" for context in error.context)
    return lines


def _format_tests(tests: TestDiagnostics) -> list[str]:
    lines = [f"  🧪 {tests.summary_line()}"]
    for failed in tests.failed_cases:
        lines.append(f"  ❌ {failed.test_case.qualified_name}")
        message = failed.test_case.message
        if failed.reasons and failed.reasons[0].message:
            message = failed.reasons[0].message
        if message:
            lines.append(f"       {message.strip().splitlines()[0]}")
    return lines


def _format_step(step: StepDiagnosis) -> list[str]:
    lines = [f"=== Step: {step.step.name} ({step.step.state.label}) ==="]

    if step.error:
        lines.append(f"  ⚠️  Could not diagnose step: {step.error}")
        return lines

    for note in step.notes:
        lines.append(f"  ℹ️  {note}")

    if step.analysis is not None:
        analysis = step.analysis
        summary = (
            f"  📊 {analysis.error_count} errors, {analysis.warning_count} warnings "
            f"in {analysis.total_lines} lines"
        )
        if analysis.summary:
            parts = ", ".join(f"{c.value}: {n}" for c, n in analysis.summary.items())
            summary += f" ({parts})"
        lines.append(summary)
        for error in analysis.errors:
            lines.extend(_format_error(error))
    elif step.tests is not None and step.tests.available:
        lines.extend(_format_tests(step.tests))

    if step.error_count == 0:
        lines.append(f"  ✅ {NO_ERRORS_MESSAGE}")

    if step.explanation is not None:
        lines.append(f"  💡 {step.explanation.summary}")
        if step.explanation.likely_cause:
            lines.append(f"     Likely cause: {step.explanation.likely_cause}")
        for fix in step.explanation.suggested_fixes:
            lines.append(f"     - {fix}")

    return lines


def format_plain_text(diagnosis: PipelineDiagnosis) -> str:
    """Render a diagnosis as a human-readable report.

    Steps with nothing to report say so explicitly; a step whose log and
    test reports were both unavailable still ends with "No errors found".
    """
    pipeline = diagnosis.pipeline
    header = (
        f"{pipeline.state.icon} Pipeline #{pipeline.build_number}: {pipeline.state.label} "
        f"({format_duration(pipeline.elapsed_seconds())})"
    )
    if pipeline.target_branch:
        header += f" on {pipeline.target_branch}"

    lines = [header, ""]
    for note in diagnosis.notes:
        lines.append(f"ℹ️  {note}")
    for step in diagnosis.steps:
        lines.extend(_format_step(step))
        lines.append("")

    if diagnosis.has_errors:
        lines.append(
            f"Total: {diagnosis.total_errors} errors, {diagnosis.total_warnings} warnings "
            f"in {len(diagnosis.steps)} step(s)"
        )
    else:
        lines.append(NO_ERRORS_MESSAGE)
    return "\n".join(lines)
