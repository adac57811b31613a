"""Option catalog (admin-curated) and per-user selections."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from autocontent.utils import utcnow


class ConfigCategory(str, Enum):
    TONE = "tone"
    INDUSTRY = "industry"
    LANGUAGE = "language"
    TARGET_AUDIENCE = "target_audience"
    CONTENT_TYPE = "content_type"

    @classmethod
    def parse(cls, value: str) -> ConfigCategory:
        """Accept ``target_audience``, ``target-audience`` or ``TARGET_AUDIENCE``."""
        return cls(value.strip().lower().replace("-", "_"))


class ConfigOption(BaseModel):
    id: str = ""
    category: ConfigCategory
    name: str = Field(max_length=100)
    value: str = Field(max_length=100)
    label: str | None = None
    display_label: str | None = None
    description: str | None = None
    sort_order: int = 0
    active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserConfigSelection(BaseModel):
    user_id: str
    option_id: str
    created_at: datetime = Field(default_factory=utcnow)


class UserConfigView(BaseModel):
    """A catalog option flagged with the current user's selection."""

    id: str
    category: ConfigCategory
    name: str
    value: str
    label: str | None = None
    display_label: str | None = None
    description: str | None = None
    sort_order: int = 0
    is_selected: bool = False

    @classmethod
    def from_option(cls, option: ConfigOption, is_selected: bool) -> UserConfigView:
        return cls(**option.model_dump(include=set(cls.model_fields) - {"is_selected"}), is_selected=is_selected)


class UserSelections(BaseModel):
    """Admin view: one user's selected options."""

    user_id: str
    username: str
    options: list[ConfigOption] = Field(default_factory=list)
