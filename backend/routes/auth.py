"""Authentication API routes."""

import logging

from fastapi import APIRouter, Depends, status

from autocontent.auth.models import User
from autocontent.auth.service import AuthService
from autocontent.schemas.auth_schemas import (
    ActivateRequest,
    AuthResponse,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
    UserInfo,
)
from autocontent.schemas.common import BaseResponse
from backend.auth import get_auth_service, require_auth

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/auth/login", response_model=BaseResponse[AuthResponse])
def login(request: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Authenticate with username/password and receive access and refresh tokens."""
    return BaseResponse.ok(auth.login(request.username, request.password), "Login successful")


@router.post(
    "/auth/register",
    response_model=BaseResponse[RegisterResponse],
    status_code=status.HTTP_201_CREATED,
)
def register(request: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """Create an inactive account. The activation token is delivered out of band."""
    user, _token = auth.register(request)
    return BaseResponse.ok(RegisterResponse(user=UserInfo.from_user(user)), "Registration successful")


@router.post("/auth/user-active", response_model=BaseResponse[UserInfo])
def activate(request: ActivateRequest, auth: AuthService = Depends(get_auth_service)):
    """Activate an account with its activation token."""
    user = auth.activate(request.token)
    return BaseResponse.ok(UserInfo.from_user(user), "Account activated successfully")


@router.post("/auth/refresh", response_model=BaseResponse[AuthResponse])
def refresh(request: RefreshTokenRequest, auth: AuthService = Depends(get_auth_service)):
    """Exchange a refresh token for a new token pair."""
    return BaseResponse.ok(auth.refresh(request.refresh_token), "Token refreshed successfully")


@router.get("/auth/me", response_model=BaseResponse[UserInfo])
def me(user: User = Depends(require_auth)):
    """Return the current authenticated user."""
    return BaseResponse.ok(UserInfo.from_user(user))
