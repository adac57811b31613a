"""Login with lockout, registration with activation token, token refresh."""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from autocontent.auth.models import Role, User
from autocontent.auth.passwords import hash_password, verify_password
from autocontent.auth.store import UserStore
from autocontent.auth.tokens import (
    ACCESS,
    REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from autocontent.config import Settings
from autocontent.errors import AuthenticationError, BusinessError, service_errors
from autocontent.schemas.auth_schemas import AuthResponse, RegisterRequest, UserInfo
from autocontent.utils import ensure_aware, new_id, utcnow

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"
ACTIVATION_TOKEN_TTL = timedelta(hours=24)


class AuthService:
    def __init__(self, users: UserStore, settings: Settings):
        self._users = users
        self._settings = settings

    def _issue(self, user: User) -> AuthResponse:
        return AuthResponse(
            access_token=create_access_token(self._settings, user.username, user.role.value),
            refresh_token=create_refresh_token(self._settings, user.username),
            expires_in=self._settings.ac_access_token_ttl_seconds,
            refresh_expires_in=self._settings.ac_refresh_token_ttl_seconds,
            user=UserInfo.from_user(user),
        )

    def login(self, username: str, password: str) -> AuthResponse:
        user = self._users.get_by_username(username.strip())
        if user is None:
            raise AuthenticationError(INVALID_CREDENTIALS)

        now = utcnow()
        if user.is_locked(now):
            raise AuthenticationError("Account is locked. Please try again later.")
        if not user.is_active:
            raise AuthenticationError("User account is not active")

        if not verify_password(password, user.password_hash):
            user.failed_login_attempts += 1
            if user.failed_login_attempts >= self._settings.ac_max_failed_logins:
                user.account_locked_until = now + timedelta(
                    minutes=self._settings.ac_lock_duration_minutes
                )
                user.failed_login_attempts = 0
                logger.warning("Account '%s' locked after repeated failed logins", user.username)
            user.updated_at = now
            self._users.update(user)
            raise AuthenticationError(INVALID_CREDENTIALS)

        user.failed_login_attempts = 0
        user.account_locked_until = None
        user.last_login_at = now
        user.updated_at = now
        self._users.update(user)
        logger.info("User '%s' authenticated", user.username)
        return self._issue(user)

    def _check_unique(self, username: str, email: str) -> None:
        if self._users.get_by_username(username):
            raise BusinessError("Username already exists")
        if self._users.get_by_email(email):
            raise BusinessError("Email already exists")

    @service_errors("Registration failed")
    def register(self, request: RegisterRequest) -> tuple[User, str]:
        """Create an inactive account; returns the user and its activation token."""
        self._check_unique(request.username, request.email)

        token = secrets.token_urlsafe(32)
        user = User(
            user_id=new_id("usr"),
            username=request.username,
            email=request.email,
            password_hash=hash_password(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
            role=Role.USER,
            is_active=False,
            email_verification_token=token,
            email_verification_expires_at=utcnow() + ACTIVATION_TOKEN_TTL,
        )
        self._users.create(user)
        logger.info("Registered user '%s'; activation token issued", user.username)
        return user, token

    def activate(self, token: str) -> User:
        user = self._users.get_by_verification_token(token)
        if user is None:
            raise BusinessError("Invalid or expired activation token")
        expires = ensure_aware(user.email_verification_expires_at)
        if expires is not None and expires < utcnow():
            raise BusinessError("Activation token has expired")
        user.is_active = True
        user.email_verified = True
        user.email_verification_token = None
        user.email_verification_expires_at = None
        user.updated_at = utcnow()
        self._users.update(user)
        logger.info("Activated user '%s'", user.username)
        return user

    def refresh(self, refresh_token: str) -> AuthResponse:
        try:
            data = decode_token(self._settings, refresh_token)
        except AuthenticationError:
            raise AuthenticationError("Invalid refresh token")
        if data.type != REFRESH:
            raise AuthenticationError("Invalid token type")
        user = self._users.get_by_username(data.sub)
        if user is None or not user.is_active or user.is_locked():
            raise AuthenticationError("User account is not available")
        return self._issue(user)

    def user_from_access_token(self, token: str) -> User:
        data = decode_token(self._settings, token)
        if data.type != ACCESS:
            raise AuthenticationError("Invalid token type")
        user = self._users.get_by_username(data.sub)
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or inactive")
        return user

    def create_user(
        self,
        username: str,
        email: str,
        password: str,
        role: Role = Role.USER,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> User:
        """Create an already-active account (seeding and admin CLI)."""
        self._check_unique(username, email)
        user = User(
            user_id=new_id("usr"),
            username=username,
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=True,
            email_verified=True,
        )
        self._users.create(user)
        return user
