"""Role-aware access to the option catalog and user selections."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from autocontent.auth.models import User
from autocontent.auth.store import UserStore
from autocontent.configs.models import (
    ConfigCategory,
    ConfigOption,
    UserConfigSelection,
    UserConfigView,
    UserSelections,
)
from autocontent.configs.store import ConfigStore
from autocontent.errors import BusinessError, InternalServerError, NotFoundError, service_errors
from autocontent.utils import new_id, utcnow

logger = logging.getLogger(__name__)


class CreateOptionRequest(BaseModel):
    category: str
    name: str = Field(min_length=1, max_length=100)
    value: str = Field(min_length=1, max_length=100)
    label: str | None = None
    display_label: str | None = None
    description: str | None = Field(default=None, max_length=1000)
    sort_order: int = 0


class UpdateSelectionRequest(BaseModel):
    id: str
    is_selected: bool


def parse_category(category: str | None) -> ConfigCategory:
    if category is None or not category.strip():
        raise BusinessError("Category cannot be null or empty")
    try:
        return ConfigCategory.parse(category)
    except ValueError:
        raise BusinessError(f"Unknown configuration category: {category}")


class ConfigService:
    def __init__(self, configs: ConfigStore, users: UserStore):
        self._configs = configs
        self._users = users

    @service_errors("Failed to retrieve configurations", InternalServerError)
    def get_configs_by_category(self, category: str, user: User) -> list[ConfigOption]:
        """Admins see the whole active catalog; users see what they selected."""
        cat = parse_category(category)
        options = self._configs.list_options(cat)
        if user.is_admin:
            return options
        selected = self._configs.selected_option_ids(user.user_id)
        return [o for o in options if o.id in selected]

    @service_errors("Failed to retrieve configurations", InternalServerError)
    def get_all_configs_by_category(self, category: str) -> list[ConfigOption]:
        return self._configs.list_options(parse_category(category))

    @service_errors("Failed to retrieve configurations", InternalServerError)
    def list_user_config_view(self, category: str, user: User) -> list[UserConfigView]:
        cat = parse_category(category)
        selected = self._configs.selected_option_ids(user.user_id)
        return [
            UserConfigView.from_option(o, o.id in selected)
            for o in self._configs.list_options(cat)
        ]

    @service_errors("Failed to update configuration selection")
    def update_selection(self, option_id: str, is_selected: bool, user: User) -> ConfigOption:
        option = self._configs.get_option(option_id)
        if option is None:
            raise BusinessError("Configuration not found")
        if is_selected:
            if not option.active:
                raise BusinessError("Configuration is not active")
            self._configs.add_selection(UserConfigSelection(user_id=user.user_id, option_id=option_id))
        else:
            self._configs.remove_selection(user.user_id, option_id)
        logger.info(
            "User %s %s option %s (%s)",
            user.username, "selected" if is_selected else "deselected", option.value, option.category.value,
        )
        return option

    @service_errors("Failed to retrieve configurations", InternalServerError)
    def get_user_configs(self, user_id: str, category: str) -> list[ConfigOption]:
        cat = parse_category(category)
        if self._users.get(user_id) is None:
            raise NotFoundError(f"User not found: {user_id}")
        selected = self._configs.selected_option_ids(user_id)
        return [o for o in self._configs.list_options(cat) if o.id in selected]

    @service_errors("Failed to retrieve configurations", InternalServerError)
    def get_all_users_configs(self, category: str) -> list[UserSelections]:
        cat = parse_category(category)
        options = {o.id: o for o in self._configs.list_options(cat)}
        by_user: dict[str, list[ConfigOption]] = {}
        for selection in self._configs.selections_for_options(list(options)):
            by_user.setdefault(selection.user_id, []).append(options[selection.option_id])
        result = []
        for user in self._users.list_all():
            if user.user_id in by_user:
                chosen = sorted(by_user[user.user_id], key=lambda o: (o.sort_order, o.name))
                result.append(UserSelections(user_id=user.user_id, username=user.username, options=chosen))
        return result

    @service_errors("Failed to create configuration")
    def create_option(self, request: CreateOptionRequest) -> ConfigOption:
        cat = parse_category(request.category)
        value = request.value.strip().lower()
        if any(o.value == value for o in self._configs.list_options(cat, active_only=False)):
            raise BusinessError(f"Option '{value}' already exists in {cat.value}")
        option = ConfigOption(
            id=new_id("opt"),
            category=cat,
            name=request.name.strip(),
            value=value,
            label=request.label or request.name.strip(),
            display_label=request.display_label or request.label or request.name.strip(),
            description=request.description,
            sort_order=request.sort_order,
        )
        return self._configs.add_option(option)

    def set_option_active(self, option_id: str, active: bool) -> ConfigOption:
        option = self._configs.get_option(option_id)
        if option is None:
            raise NotFoundError(f"Configuration not found: {option_id}")
        option.active = active
        option.updated_at = utcnow()
        self._configs.update_option(option)
        return option

    def is_valid_option(self, category: ConfigCategory, value: str) -> bool:
        """Unknown values are accepted while the category has no catalog entries."""
        options = self._configs.list_options(category)
        if not options:
            return True
        return value.strip().lower() in {o.value for o in options}
