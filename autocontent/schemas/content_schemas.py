"""Pydantic models for content generation, saving and workflow hand-off."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from autocontent.jobs.models import JobPriority
from autocontent.schemas.common import PaginationMetadata
from autocontent.utils import utcnow

# Request fields a preset's configuration may fill in
PRESET_FIELDS = ("content_type", "industry", "target_audience", "tone", "language", "ai_provider", "ai_model")


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class ContentGenerateRequest(BaseModel):
    """Body for POST /api/v1/content/generate and /generate-async."""

    content: str = Field(min_length=1, max_length=10000)
    title: str | None = Field(default=None, max_length=500)
    content_type: str | None = Field(default=None, max_length=20)
    industry: str | None = Field(default=None, max_length=100)
    target_audience: str | None = Field(default=None, max_length=200)
    tone: str | None = Field(default=None, max_length=50)
    language: str | None = Field(default=None, max_length=10)

    # Optional LLM overrides
    ai_provider: str | None = None
    ai_model: str | None = None

    preset_id: str | None = None
    priority: JobPriority = JobPriority.NORMAL
    max_retries: int | None = Field(default=None, ge=0, le=10)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Content cannot be blank")
        return v.strip()

    def normalized(self) -> ContentGenerateRequest:
        """Trim strings and lower-case catalog-backed fields; language defaults to ``vi``."""
        updates: dict[str, Any] = {}
        for name in ("content_type", "industry", "target_audience", "tone", "language", "ai_provider"):
            value = getattr(self, name)
            if value is not None:
                updates[name] = value.strip().lower() or None
        if self.title is not None:
            updates["title"] = self.title.strip() or None
        if not updates.get("language", self.language):
            updates["language"] = "vi"
        return self.model_copy(update=updates)

    def with_preset(self, configuration: dict[str, Any]) -> ContentGenerateRequest:
        """Fill missing fields from a preset configuration."""
        updates = {
            name: configuration[name]
            for name in PRESET_FIELDS
            if getattr(self, name) in (None, "") and configuration.get(name)
        }
        return self.model_copy(update=updates)


class ContentGenerateResponse(BaseModel):
    generated_content: str | None = None
    title: str | None = None
    word_count: int = 0
    character_count: int = 0
    tokens_used: int = 0
    generation_cost: float = 0.0
    processing_time_ms: int = 0
    status: str = "COMPLETED"
    error_message: str | None = None
    ai_provider: str | None = None
    ai_model: str | None = None
    content_id: str | None = None


# ---------------------------------------------------------------------------
# Saved content
# ---------------------------------------------------------------------------

class ContentSaveRequest(BaseModel):
    generated_content: str = Field(min_length=1)
    title: str | None = Field(default=None, max_length=500)
    content_type: str | None = Field(default=None, max_length=20)
    industry: str | None = Field(default=None, max_length=100)
    target_audience: str | None = Field(default=None, max_length=200)
    tone: str | None = Field(default=None, max_length=50)
    language: str = Field(default="vi", max_length=10)
    prompt: str | None = None

    @field_validator("generated_content")
    @classmethod
    def _generated_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Generated content cannot be blank")
        return v


class SavedContent(BaseModel):
    id: str = ""
    user_id: str = ""
    title: str | None = None
    generated_content: str = ""
    prompt: str | None = None
    content_type: str | None = None
    industry: str | None = None
    target_audience: str | None = None
    tone: str | None = None
    language: str = "vi"
    word_count: int = 0
    character_count: int = 0
    ai_provider: str | None = None
    ai_model: str | None = None
    tokens_used: int | None = None
    generation_cost: float | None = None
    processing_time_ms: int | None = None
    job_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class ContentListResponse(BaseModel):
    contents: list[SavedContent] = Field(default_factory=list)
    pagination: PaginationMetadata


# ---------------------------------------------------------------------------
# Workflow hand-off
# ---------------------------------------------------------------------------

class WorkflowRequest(BaseModel):
    generated_content: str
    title: str | None = None
    content_type: str | None = None
    industry: str | None = None
    target_audience: str | None = None
    tone: str | None = None
    language: str = "vi"
    content_id: str | None = None


class WorkflowResult(BaseModel):
    status: str
    message: str
    workflow_response: Any | None = None
