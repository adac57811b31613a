"""Content generation entry points: synchronous generate-and-save, async queueing, manual save."""

from __future__ import annotations

import logging

from autocontent.auth.models import User
from autocontent.configs.models import ConfigCategory
from autocontent.configs.service import ConfigService
from autocontent.content.generator import ContentGenerator, build_prompt, count_words
from autocontent.content.store import ContentStore
from autocontent.errors import BusinessError, service_errors
from autocontent.jobs.queue import QueueService
from autocontent.presets.service import PresetService
from autocontent.schemas.content_schemas import (
    ContentGenerateRequest,
    ContentGenerateResponse,
    ContentSaveRequest,
    SavedContent,
)
from autocontent.schemas.job_schemas import QueueJobRequest, QueueJobResponse
from autocontent.utils import new_id

logger = logging.getLogger(__name__)


class ContentService:
    def __init__(
        self,
        contents: ContentStore,
        configs: ConfigService,
        presets: PresetService,
        queue: QueueService,
        generator: ContentGenerator | None = None,
    ):
        self._contents = contents
        self._configs = configs
        self._presets = presets
        self._queue = queue
        self._generator = generator

    def prepare(self, request: ContentGenerateRequest, user: User) -> ContentGenerateRequest:
        """Apply the preset (if any), normalise fields and validate the content type."""
        if request.preset_id:
            preset = self._presets.record_usage(request.preset_id, user)
            request = request.with_preset(preset.configuration)
        request = request.normalized()
        if request.content_type and not self._configs.is_valid_option(
            ConfigCategory.CONTENT_TYPE, request.content_type
        ):
            raise BusinessError(f"Invalid content type: {request.content_type}")
        return request

    @service_errors("Failed to generate content")
    def generate(self, request: ContentGenerateRequest, user: User) -> ContentGenerateResponse:
        if self._generator is None:
            raise BusinessError("Content generation is not available")
        request = self.prepare(request, user)
        response = self._generator.generate(request)
        saved = self._contents.save(SavedContent(
            id=new_id("content"),
            user_id=user.user_id,
            title=request.title,
            generated_content=response.generated_content or "",
            prompt=build_prompt(request),
            content_type=request.content_type,
            industry=request.industry,
            target_audience=request.target_audience,
            tone=request.tone,
            language=request.language or "vi",
            word_count=response.word_count,
            character_count=response.character_count,
            ai_provider=response.ai_provider,
            ai_model=response.ai_model,
            tokens_used=response.tokens_used,
            generation_cost=response.generation_cost,
            processing_time_ms=response.processing_time_ms,
        ))
        response.content_id = saved.id
        return response

    @service_errors("Failed to queue content generation")
    def queue(self, request: ContentGenerateRequest, user: User) -> QueueJobResponse:
        request = self.prepare(request, user)
        return self._queue.queue_job(QueueJobRequest(
            user_id=user.user_id,
            content_type=request.content_type,
            request_params=request.model_dump(mode="json", exclude={"priority", "max_retries"}),
            priority=request.priority,
            max_retries=request.max_retries,
            metadata={"preset_id": request.preset_id} if request.preset_id else {},
        ))

    @service_errors("Failed to save content")
    def save(self, request: ContentSaveRequest, user: User) -> SavedContent:
        text = request.generated_content
        content = SavedContent(
            id=new_id("content"),
            user_id=user.user_id,
            title=request.title,
            generated_content=text,
            prompt=request.prompt,
            content_type=request.content_type,
            industry=request.industry,
            target_audience=request.target_audience,
            tone=request.tone,
            language=request.language,
            word_count=count_words(text),
            character_count=len(text),
        )
        self._contents.save(content)
        logger.info("User %s saved content %s", user.username, content.id)
        return content

    @service_errors("Failed to retrieve saved content")
    def list_contents(self, user: User, page: int, size: int) -> tuple[list[SavedContent], int]:
        return self._contents.list_for_user(user.user_id, page, size)
