"""Bearer-token dependencies for protected routes."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from autocontent.auth.models import User
from autocontent.auth.service import AuthService
from autocontent.auth.store import get_user_store
from autocontent.config import get_settings
from autocontent.errors import AccessDeniedError, AuthenticationError

_bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service() -> AuthService:
    return AuthService(get_user_store(), get_settings())


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """FastAPI dependency: validate the JWT access token and load the user.

    Raises 401 when the header is missing or the token is invalid.
    """
    if not credentials or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    return auth.user_from_access_token(credentials.credentials)


def require_admin(user: User = Depends(require_auth)) -> User:
    if not user.is_admin:
        raise AccessDeniedError("Admin role required")
    return user
