"""FailureExplainer - asks an LLM to explain a step's extracted errors."""

import json
import logging
from typing import Optional

from src.log_analysis import LogAnalysisResult

from .adapter import LLMAdapter
from .exceptions import LLMResponseError
from .models import FailureExplanation, Message, MessageRole
from .openai_adapter import OpenAIAdapter
from .prompts import ERROR_TEMPLATE, SYSTEM_PROMPT, USER_PROMPT_TEMPLATE

logger = logging.getLogger(__name__)


class FailureExplainer:
    """Turns a LogAnalysisResult into a short, plain-language explanation.

    Only the extracted errors and their context are sent, never the full
    log. The adapter is pluggable; OpenAI is used by default.

    Example usage:
        explainer = FailureExplainer()
        explanation = explainer.explain("Build and test", analysis)
        print(explanation.likely_cause)
    """

    MAX_ERRORS = 20
    MAX_LINE_LENGTH = 500

    def __init__(
        self,
        adapter: Optional[LLMAdapter] = None,
        temperature: float = 0.0,
        max_retries: int = 2,
    ):
        """Initialize the FailureExplainer.

        Args:
            adapter: LLM adapter to use. Defaults to OpenAIAdapter.
            temperature: LLM sampling temperature.
            max_retries: Extra attempts when the reply cannot be parsed.
        """
        self._adapter = adapter
        self._temperature = temperature
        self._max_retries = max_retries

    def _get_adapter(self) -> LLMAdapter:
        if self._adapter is None:
            self._adapter = OpenAIAdapter()
        return self._adapter

    def _clip(self, text: str) -> str:
        if len(text) <= self.MAX_LINE_LENGTH:
            return text
        return text[: self.MAX_LINE_LENGTH] + "…"

    def _build_messages(self, step_name: str, analysis: LogAnalysisResult) -> list[Message]:
        errors = "\n".join(
            ERROR_TEMPLATE.format(
                line_number=error.line_number,
                category=error.category.value,
                severity=error.severity.value,
                content=self._clip(error.content),
                context="\n".join(self._clip(line) for line in error.context) or "(none)",
            )
            for error in analysis.errors[: self.MAX_ERRORS]
        )
        categories = ", ".join(
            f"{category.value}: {count}" for category, count in analysis.summary.items()
        )
        user_content = USER_PROMPT_TEMPLATE.format(
            step_name=step_name,
            total_lines=analysis.total_lines,
            error_count=analysis.error_count,
            categories=categories or "none",
            warning_count=analysis.warning_count,
            errors=errors or "(no errors extracted)",
        )
        return [
            Message(role=MessageRole.SYSTEM, content=SYSTEM_PROMPT),
            Message(role=MessageRole.USER, content=user_content),
        ]

    def _parse_response(self, response: str, step_name: str) -> FailureExplanation:
        """Parse the JSON reply.

        Raises:
            LLMResponseError: If the reply is not JSON or lacks a summary.
        """
        try:
            data = json.loads(response)
        except json.JSONDecodeError as e:
            raise LLMResponseError(
                f"Failed to parse LLM response as JSON: {e}", raw_response=response
            ) from e
        if not isinstance(data, dict) or not data.get("summary"):
            raise LLMResponseError("LLM response has no summary", raw_response=response)

        fixes = data.get("suggested_fixes") or []
        if isinstance(fixes, str):
            fixes = [fixes]
        return FailureExplanation(
            step_name=step_name,
            summary=str(data["summary"]),
            likely_cause=str(data.get("likely_cause", "")),
            suggested_fixes=[str(fix) for fix in fixes],
            model=self._get_adapter().model_name,
        )

    def explain(self, step_name: str, analysis: LogAnalysisResult) -> FailureExplanation:
        """Explain the errors found in one step.

        Args:
            step_name: Name of the step, for the prompt and the result.
            analysis: Result produced by LogAnalyzer for that step.

        Returns:
            FailureExplanation.

        Raises:
            LLMConnectionError: Failed to connect to LLM provider.
            LLMRateLimitError: Rate limit exceeded.
            LLMAuthenticationError: Invalid credentials.
            LLMResponseError: Unusable response after retries.
        """
        adapter = self._get_adapter()
        messages = self._build_messages(step_name, analysis)

        for attempt in range(self._max_retries + 1):
            response = adapter.complete(
                messages=messages,
                temperature=self._temperature,
                json_mode=True,
            )
            try:
                return self._parse_response(response, step_name)
            except LLMResponseError:
                if attempt >= self._max_retries:
                    raise
                logger.debug("Unparseable explanation for %s, retrying", step_name)

        raise LLMResponseError("Explanation failed with no error details")
