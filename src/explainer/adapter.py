"""Abstract interface for LLM adapters."""

from abc import ABC, abstractmethod

from .models import Message


class LLMAdapter(ABC):
    """Provider-neutral interface used by FailureExplainer.

    Implementations authenticate with their provider, send the messages,
    and translate provider errors into the exceptions in exceptions.py.

    Example usage:
        adapter = OpenAIAdapter()
        text = adapter.complete(
            [Message(MessageRole.USER, "Why did this build fail? ...")],
            json_mode=True,
        )
    """

    @abstractmethod
    def complete(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        """Send messages to the LLM and return its reply.

        Args:
            messages: Conversation messages, system prompt first.
            temperature: Sampling temperature (0.0 = deterministic).
            max_tokens: Maximum tokens in the reply.
            json_mode: If True, ask for a JSON object.

        Raises:
            LLMConnectionError: Failed to connect to provider.
            LLMRateLimitError: Rate limit exceeded.
            LLMAuthenticationError: Invalid credentials.
            LLMResponseError: Invalid response from provider.
        """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Name of the model being used."""
