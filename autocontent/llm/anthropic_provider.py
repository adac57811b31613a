"""Anthropic messages provider."""

from typing import Any

from anthropic import Anthropic

from autocontent.llm.base import Completion


class AnthropicProvider:
    """Anthropic messages completion with token usage."""

    name = "anthropic"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-sonnet-20241022",
    ):
        self._client = Anthropic(api_key=api_key)
        self._model = model

    def complete(self, prompt: str, **kwargs: Any) -> str:
        return self.complete_with_usage(prompt, **kwargs).text

    def complete_with_usage(self, prompt: str, **kwargs: Any) -> Completion:
        model = kwargs.get("model") or self._model
        response = self._client.messages.create(
            model=model,
            max_tokens=kwargs.get("max_tokens", 4096),
            messages=[{"role": "user", "content": prompt}],
        )
        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        return Completion(
            text=text,
            model=response.model or model,
            prompt_tokens=response.usage.input_tokens,
            completion_tokens=response.usage.output_tokens,
        )
