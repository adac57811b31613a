"""LLM adapter layer: OpenAI and Anthropic behind a common protocol."""

from autocontent.llm.anthropic_provider import AnthropicProvider
from autocontent.llm.base import Completion, LLMProvider
from autocontent.llm.openai_provider import OpenAIProvider

PROVIDERS = ("openai", "anthropic")


def get_provider(provider_name: str, **kwargs: object) -> LLMProvider:
    """Return the configured LLM provider. provider_name: 'openai' | 'anthropic'."""
    if provider_name.lower() == "anthropic":
        return AnthropicProvider(**kwargs)
    return OpenAIProvider(**kwargs)


__all__ = ["Completion", "LLMProvider", "OpenAIProvider", "AnthropicProvider", "PROVIDERS", "get_provider"]
