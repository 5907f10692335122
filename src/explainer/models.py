"""Data models for the explainer module."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MessageRole(Enum):
    """LLM message roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """A message in an LLM conversation."""

    role: MessageRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class FailureExplanation:
    """Plain-language account of why a step failed.

    Attributes:
        step_name: Step the explanation is about.
        summary: One or two sentences describing the failure.
        likely_cause: The most probable root cause.
        suggested_fixes: Concrete next steps, most promising first.
        model: Model that produced the explanation.
    """

    step_name: str
    summary: str
    likely_cause: str = ""
    suggested_fixes: list[str] = field(default_factory=list)
    model: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_name": self.step_name,
            "summary": self.summary,
            "likely_cause": self.likely_cause,
            "suggested_fixes": list(self.suggested_fixes),
            "model": self.model,
        }
