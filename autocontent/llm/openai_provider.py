"""OpenAI chat completion provider."""

from typing import Any

from openai import OpenAI

from autocontent.llm.base import Completion


class OpenAIProvider:
    """OpenAI chat completion with token usage."""

    name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
    ):
        self._client = OpenAI(api_key=api_key)
        self._model = model

    def complete(self, prompt: str, **kwargs: Any) -> str:
        return self.complete_with_usage(prompt, **kwargs).text

    def complete_with_usage(self, prompt: str, **kwargs: Any) -> Completion:
        # openai exceptions propagate; the router decides whether to fail over
        model = kwargs.pop("model", None) or self._model
        response = self._client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        usage = response.usage
        return Completion(
            text=response.choices[0].message.content or "",
            model=response.model or model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
        )
