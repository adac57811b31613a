"""Option catalog routes: per-user selections (/setting) and role-based catalog views (/configs)."""

import logging

from fastapi import APIRouter, Depends, status

from autocontent.auth.models import User
from autocontent.configs.models import ConfigOption, UserConfigView, UserSelections
from autocontent.configs.service import ConfigService, CreateOptionRequest, UpdateSelectionRequest
from autocontent.schemas.common import BaseResponse
from backend.auth import require_admin, require_auth
from backend.deps import get_config_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/setting/{category}", response_model=BaseResponse[list[UserConfigView]])
def list_setting(
    category: str,
    user: User = Depends(require_auth),
    configs: ConfigService = Depends(get_config_service),
):
    """Every active option in the category, flagged with the caller's selection."""
    return BaseResponse.ok(configs.list_user_config_view(category, user))


@router.post("/setting", response_model=BaseResponse[list[UserConfigView]])
def update_setting(
    request: UpdateSelectionRequest,
    user: User = Depends(require_auth),
    configs: ConfigService = Depends(get_config_service),
):
    option = configs.update_selection(request.id, request.is_selected, user)
    return BaseResponse.ok(
        configs.list_user_config_view(option.category.value, user),
        "Setting updated successfully",
    )


@router.get("/configs/{category}", response_model=BaseResponse[list[ConfigOption]])
def configs_by_category(
    category: str,
    user: User = Depends(require_auth),
    configs: ConfigService = Depends(get_config_service),
):
    """Admins receive the full catalog; users receive their own selections."""
    return BaseResponse.ok(configs.get_configs_by_category(category, user))


@router.get("/configs/{category}/all", response_model=BaseResponse[list[ConfigOption]])
def all_configs_by_category(
    category: str,
    _user: User = Depends(require_auth),
    configs: ConfigService = Depends(get_config_service),
):
    return BaseResponse.ok(configs.get_all_configs_by_category(category))


@router.get("/configs/{category}/users", response_model=BaseResponse[list[UserSelections]])
def all_users_configs(
    category: str,
    _admin: User = Depends(require_admin),
    configs: ConfigService = Depends(get_config_service),
):
    return BaseResponse.ok(configs.get_all_users_configs(category))


@router.post("/configs", response_model=BaseResponse[ConfigOption], status_code=status.HTTP_201_CREATED)
def create_config(
    request: CreateOptionRequest,
    admin: User = Depends(require_admin),
    configs: ConfigService = Depends(get_config_service),
):
    option = configs.create_option(request)
    logger.info("Admin %s created option %s in %s", admin.username, option.value, option.category.value)
    return BaseResponse.ok(option, "Configuration created successfully")
