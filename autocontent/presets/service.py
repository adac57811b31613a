"""Preset CRUD scoped to the owning user."""

from __future__ import annotations

import logging

from autocontent.auth.models import User
from autocontent.errors import BusinessError, NotFoundError, service_errors
from autocontent.presets.models import CreatePresetRequest, Preset, UpdatePresetRequest
from autocontent.presets.store import PresetStore
from autocontent.utils import ensure_aware, new_id, utcnow

logger = logging.getLogger(__name__)


class PresetService:
    def __init__(self, store: PresetStore):
        self._store = store

    @service_errors("Failed to retrieve presets")
    def list_presets(self, user: User) -> list[Preset]:
        """Default first, then favourites, then newest."""
        presets = self._store.list_for_user(user.user_id)
        presets.sort(key=lambda p: ensure_aware(p.created_at), reverse=True)
        presets.sort(key=lambda p: (not p.is_default, not p.is_favorite))
        return presets

    def get_owned(self, preset_id: str, user: User) -> Preset:
        preset = self._store.get(preset_id)
        if preset is None or preset.user_id != user.user_id:
            raise NotFoundError(f"Preset not found: {preset_id}")
        return preset

    def _check_name(self, name: str, user: User, exclude_id: str | None = None) -> None:
        wanted = name.strip().lower()
        for other in self._store.list_for_user(user.user_id):
            if other.id != exclude_id and other.name.strip().lower() == wanted:
                raise BusinessError(f"Preset with name '{name.strip()}' already exists")

    def _clear_default(self, user: User, keep_id: str) -> None:
        for other in self._store.list_for_user(user.user_id):
            if other.id != keep_id and other.is_default:
                other.is_default = False
                other.updated_at = utcnow()
                self._store.update(other)

    @service_errors("Failed to create preset")
    def create_preset(self, request: CreatePresetRequest, user: User) -> Preset:
        if not request.configuration:
            raise BusinessError("Preset configuration is required")
        self._check_name(request.name, user)
        preset = Preset(id=new_id("preset"), user_id=user.user_id, **request.model_dump())
        preset.name = preset.name.strip()
        self._store.create(preset)
        if preset.is_default:
            self._clear_default(user, preset.id)
        logger.info("User %s created preset %s", user.username, preset.id)
        return preset

    @service_errors("Failed to update preset")
    def update_preset(self, preset_id: str, request: UpdatePresetRequest, user: User) -> Preset:
        preset = self.get_owned(preset_id, user)
        changes = request.model_dump(exclude_none=True)
        if "name" in changes:
            self._check_name(changes["name"], user, exclude_id=preset.id)
            changes["name"] = changes["name"].strip()
        if "configuration" in changes and not changes["configuration"]:
            raise BusinessError("Preset configuration is required")
        updated = preset.model_copy(update={**changes, "updated_at": utcnow()})
        self._store.update(updated)
        if updated.is_default:
            self._clear_default(user, updated.id)
        return updated

    @service_errors("Failed to delete preset")
    def delete_preset(self, preset_id: str, user: User) -> None:
        self.get_owned(preset_id, user)
        self._store.delete(preset_id)
        logger.info("User %s deleted preset %s", user.username, preset_id)

    def record_usage(self, preset_id: str, user: User) -> Preset:
        preset = self.get_owned(preset_id, user)
        preset.usage_count += 1
        preset.last_used_at = utcnow()
        preset.updated_at = preset.last_used_at
        self._store.update(preset)
        return preset
