"""Prompt construction and single-shot content generation through the provider router."""

from __future__ import annotations

import logging
import time

from autocontent.config import Settings
from autocontent.llm.routing import ProviderRouter
from autocontent.schemas.content_schemas import ContentGenerateRequest, ContentGenerateResponse

logger = logging.getLogger(__name__)

_LANGUAGE_NAMES = {"vi": "Vietnamese", "en": "English"}


def build_prompt(request: ContentGenerateRequest) -> str:
    """Deterministic prompt: brief first, then every style field that was provided."""
    lines = ["You are a professional content writer. Write original, publication-ready content."]
    if request.title:
        lines.append(f"Title: {request.title}")
    lines.append(f"Brief: {request.content}")
    if request.content_type:
        lines.append(f"Content type: {request.content_type}")
    if request.industry:
        lines.append(f"Industry: {request.industry}")
    if request.target_audience:
        lines.append(f"Target audience: {request.target_audience}")
    if request.tone:
        lines.append(f"Tone: {request.tone}")
    language = request.language or "vi"
    lines.append(f"Language: {_LANGUAGE_NAMES.get(language, language)}")
    lines.append("Return only the content, without commentary.")
    return "\n".join(lines)


def count_words(text: str) -> int:
    return len(text.split())


class ContentGenerator:
    def __init__(self, router: ProviderRouter, settings: Settings):
        self._router = router
        self._settings = settings

    def cost_for(self, tokens: int) -> float:
        return round(tokens / 1000 * self._settings.ac_token_cost_per_1k, 6)

    def generate(self, request: ContentGenerateRequest) -> ContentGenerateResponse:
        prompt = build_prompt(request)
        started = time.perf_counter()
        completion, provider = self._router.generate(
            prompt, provider=request.ai_provider, model=request.ai_model
        )
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        text = completion.text.strip()
        tokens = completion.total_tokens
        logger.info(
            "Generated %d chars via %s/%s in %d ms (%d tokens)",
            len(text), provider, completion.model, elapsed_ms, tokens,
        )
        return ContentGenerateResponse(
            generated_content=text,
            title=request.title,
            word_count=count_words(text),
            character_count=len(text),
            tokens_used=tokens,
            generation_cost=self.cost_for(tokens),
            processing_time_ms=elapsed_ms,
            status="COMPLETED",
            ai_provider=provider,
            ai_model=completion.model,
        )
