"""Optional LLM explanations of step failures.

Public API:
    - FailureExplainer: Explains a step's extracted errors
    - FailureExplanation: The explanation
    - LLMAdapter: Interface for LLM providers
    - OpenAIAdapter: OpenAI implementation
"""

from .adapter import LLMAdapter
from .exceptions import (
    ExplainerError,
    LLMAuthenticationError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
)
from .failure_explainer import FailureExplainer
from .models import FailureExplanation, Message, MessageRole
from .openai_adapter import OpenAIAdapter

__all__ = [
    # Main classes
    "FailureExplainer",
    "LLMAdapter",
    "OpenAIAdapter",
    # Models
    "FailureExplanation",
    "Message",
    "MessageRole",
    # Exceptions
    "ExplainerError",
    "LLMAuthenticationError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMResponseError",
]
