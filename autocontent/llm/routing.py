"""Provider failover: try the requested provider, then the configured fallbacks."""

from __future__ import annotations

import logging
from typing import Callable

from autocontent.config import Settings
from autocontent.errors import BusinessError, GenerationError
from autocontent.llm import PROVIDERS, get_provider
from autocontent.llm.base import Completion, LLMProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[..., LLMProvider]


class ProviderRouter:
    def __init__(self, settings: Settings, factory: ProviderFactory = get_provider):
        self._settings = settings
        self._factory = factory

    def _credentials(self, provider_name: str) -> tuple[str | None, str]:
        if provider_name == "anthropic":
            return self._settings.anthropic_api_key, self._settings.ac_anthropic_model
        return self._settings.openai_api_key, self._settings.ac_openai_model

    def failover_order(self, preferred: str | None = None) -> list[str]:
        order: list[str] = []
        for name in [preferred or self._settings.ac_llm_provider, *self._settings.fallback_provider_list]:
            name = (name or "").strip().lower()
            if name in PROVIDERS and name not in order:
                order.append(name)
        return order

    def generate(
        self, prompt: str, provider: str | None = None, model: str | None = None
    ) -> tuple[Completion, str]:
        """Return the first successful completion and the provider that produced it."""
        order = self.failover_order(provider)
        # An explicit model only applies to the provider it was requested for
        model_owner = (provider or self._settings.ac_llm_provider or "").strip().lower()
        last_error: Exception | None = None
        attempted = 0
        for name in order:
            api_key, default_model = self._credentials(name)
            if not api_key:
                logger.debug("Skipping provider %s: no API key configured", name)
                continue
            use_model = model if (model and name == model_owner) else default_model
            attempted += 1
            try:
                llm = self._factory(name, api_key=api_key, model=use_model)
                completion = llm.complete_with_usage(prompt)
                if not completion.model:
                    completion.model = use_model
                return completion, name
            except Exception as e:
                last_error = e
                logger.warning("Provider %s failed (%s), trying next", name, str(e)[:200])

        if attempted == 0:
            raise BusinessError("No AI provider is configured. Set OPENAI_API_KEY or ANTHROPIC_API_KEY.")
        raise GenerationError(f"All AI providers failed: {str(last_error)[:300]}")
