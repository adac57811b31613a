"""User account model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from autocontent.utils import ensure_aware, utcnow


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class User(BaseModel):
    user_id: str = ""
    username: str = Field(default="", max_length=50)
    email: str = Field(default="", max_length=100)
    password_hash: str = ""
    first_name: str | None = None
    last_name: str | None = None
    role: Role = Role.USER
    is_active: bool = False
    email_verified: bool = False
    email_verification_token: str | None = None
    email_verification_expires_at: datetime | None = None
    failed_login_attempts: int = 0
    account_locked_until: datetime | None = None
    last_login_at: datetime | None = None
    language: str = "vi"
    profile_picture_url: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def is_locked(self, now: datetime | None = None) -> bool:
        if self.account_locked_until is None:
            return False
        return ensure_aware(self.account_locked_until) > (now or utcnow())
