"""Abstract LLM provider protocol."""

from typing import Any, Protocol

from pydantic import BaseModel


class Completion(BaseModel):
    """Completion text plus token usage reported by the provider."""

    text: str = ""
    model: str = ""
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class LLMProvider(Protocol):
    """Protocol for LLM backends (OpenAI, Anthropic)."""

    def complete(self, prompt: str, **kwargs: Any) -> str:
        """Return raw text completion."""
        ...

    def complete_with_usage(self, prompt: str, **kwargs: Any) -> Completion:
        """Return completion text together with token usage."""
        ...
