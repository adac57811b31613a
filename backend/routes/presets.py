"""Preset CRUD routes; every preset is scoped to its owner."""

from fastapi import APIRouter, Depends, status

from autocontent.auth.models import User
from autocontent.presets.models import CreatePresetRequest, Preset, UpdatePresetRequest
from autocontent.presets.service import PresetService
from autocontent.schemas.common import BaseResponse
from backend.auth import require_auth
from backend.deps import get_preset_service

router = APIRouter()


@router.get("/presets", response_model=BaseResponse[list[Preset]])
def list_presets(user: User = Depends(require_auth), presets: PresetService = Depends(get_preset_service)):
    return BaseResponse.ok(presets.list_presets(user))


@router.post("/presets", response_model=BaseResponse[Preset], status_code=status.HTTP_201_CREATED)
def create_preset(
    request: CreatePresetRequest,
    user: User = Depends(require_auth),
    presets: PresetService = Depends(get_preset_service),
):
    return BaseResponse.ok(presets.create_preset(request, user), "Preset created successfully")


@router.get("/presets/{preset_id}", response_model=BaseResponse[Preset])
def get_preset(
    preset_id: str,
    user: User = Depends(require_auth),
    presets: PresetService = Depends(get_preset_service),
):
    return BaseResponse.ok(presets.get_owned(preset_id, user))


@router.put("/presets/{preset_id}", response_model=BaseResponse[Preset])
def update_preset(
    preset_id: str,
    request: UpdatePresetRequest,
    user: User = Depends(require_auth),
    presets: PresetService = Depends(get_preset_service),
):
    return BaseResponse.ok(presets.update_preset(preset_id, request, user), "Preset updated successfully")


@router.delete("/presets/{preset_id}", response_model=BaseResponse[None])
def delete_preset(
    preset_id: str,
    user: User = Depends(require_auth),
    presets: PresetService = Depends(get_preset_service),
):
    presets.delete_preset(preset_id, user)
    return BaseResponse.ok(None, "Preset deleted successfully")
