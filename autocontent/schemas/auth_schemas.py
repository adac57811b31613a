"""Request/response models for login, registration and token refresh."""

from __future__ import annotations

from pydantic import BaseModel, Field

from autocontent.auth.models import Role, User


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: str = Field(max_length=100, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=6, max_length=128)
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)


class ActivateRequest(BaseModel):
    token: str = Field(min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class UserInfo(BaseModel):
    id: str
    username: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: Role
    email_verified: bool = False
    profile_picture_url: str | None = None

    @classmethod
    def from_user(cls, user: User) -> UserInfo:
        return cls(
            id=user.user_id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            email_verified=user.email_verified,
            profile_picture_url=user.profile_picture_url,
        )


class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_expires_in: int
    user: UserInfo


class RegisterResponse(BaseModel):
    user: UserInfo
    message: str = "Registration successful. Please activate your account."
