"""Saved generation presets."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from autocontent.utils import utcnow


class Preset(BaseModel):
    id: str = ""
    user_id: str = ""
    name: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    configuration: dict[str, Any] = Field(default_factory=dict)
    category: str | None = Field(default=None, max_length=100)
    content_type: str | None = Field(default=None, max_length=50)
    is_default: bool = False
    is_favorite: bool = False
    is_shared: bool = False
    tags: list[str] = Field(default_factory=list)
    usage_count: int = 0
    last_used_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CreatePresetRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    configuration: dict[str, Any]
    category: str | None = Field(default=None, max_length=100)
    content_type: str | None = Field(default=None, max_length=50)
    is_default: bool = False
    is_favorite: bool = False
    is_shared: bool = False
    tags: list[str] = Field(default_factory=list)


class UpdatePresetRequest(BaseModel):
    """Partial update; only non-null fields are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    configuration: dict[str, Any] | None = None
    category: str | None = Field(default=None, max_length=100)
    content_type: str | None = Field(default=None, max_length=50)
    is_default: bool | None = None
    is_favorite: bool | None = None
    is_shared: bool | None = None
    tags: list[str] | None = None
