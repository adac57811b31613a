"""Access and refresh JWTs (PyJWT, HS256 by default)."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Literal

import jwt
from pydantic import BaseModel

from autocontent.config import Settings
from autocontent.errors import AuthenticationError
from autocontent.utils import utcnow

ACCESS = "access"
REFRESH = "refresh"


class TokenData(BaseModel):
    """Decoded JWT payload."""

    sub: str
    type: Literal["access", "refresh"]
    role: str | None = None
    iat: int
    exp: int


def _encode(settings: Settings, subject: str, token_type: str, ttl: int, **claims: Any) -> str:
    now = utcnow()
    payload: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl)).timestamp()),
        **claims,
    }
    return jwt.encode(payload, settings.ac_jwt_secret, algorithm=settings.ac_jwt_algorithm)


def create_access_token(settings: Settings, username: str, role: str) -> str:
    return _encode(settings, username, ACCESS, settings.ac_access_token_ttl_seconds, role=role)


def create_refresh_token(settings: Settings, username: str) -> str:
    return _encode(settings, username, REFRESH, settings.ac_refresh_token_ttl_seconds)


def decode_token(settings: Settings, token: str) -> TokenData:
    try:
        payload = jwt.decode(token, settings.ac_jwt_secret, algorithms=[settings.ac_jwt_algorithm])
        return TokenData(**payload)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except (jwt.InvalidTokenError, ValueError):
        raise AuthenticationError("Invalid token")
