"""Tests for the option catalog and per-user selections."""

import pytest

from autocontent.configs.models import ConfigCategory
from autocontent.configs.service import ConfigService, CreateOptionRequest, parse_category
from autocontent.errors import BusinessError, InternalServerError, NotFoundError


@pytest.fixture
def service(catalog, user_store):
    return ConfigService(catalog, user_store)


def test_parse_category_accepts_hyphenated_and_upper_case():
    assert parse_category("target-audience") == ConfigCategory.TARGET_AUDIENCE
    assert parse_category("CONTENT_TYPE") == ConfigCategory.CONTENT_TYPE
    with pytest.raises(BusinessError, match="Category cannot be null or empty"):
        parse_category("  ")
    with pytest.raises(BusinessError, match="Unknown configuration category"):
        parse_category("colour")


def test_admin_sees_whole_catalog_user_sees_selection(service, admin, user):
    all_tones = service.get_configs_by_category("tone", admin)
    assert [o.value for o in all_tones][:2] == ["professional", "friendly"]
    assert service.get_configs_by_category("tone", user) == []

    service.update_selection("opt_tone_friendly", True, user)
    assert [o.value for o in service.get_configs_by_category("tone", user)] == ["friendly"]


def test_user_view_flags_selected_options(service, user):
    service.update_selection("opt_language_en", True, user)
    view = service.list_user_config_view("language", user)
    assert {v.value: v.is_selected for v in view} == {"vi": False, "en": True}


def test_selection_is_idempotent_and_deselect_is_noop(service, user, catalog):
    service.update_selection("opt_tone_casual", True, user)
    service.update_selection("opt_tone_casual", True, user)
    assert catalog.selected_option_ids(user.user_id) == {"opt_tone_casual"}

    service.update_selection("opt_tone_casual", False, user)
    service.update_selection("opt_tone_casual", False, user)
    assert catalog.selected_option_ids(user.user_id) == set()


def test_unknown_option_is_rejected(service, user):
    with pytest.raises(BusinessError, match="Configuration not found"):
        service.update_selection("opt_missing", True, user)


def test_inactive_options_disappear_and_cannot_be_selected(service, admin, user):
    service.set_option_active("opt_tone_formal", False)
    assert "formal" not in [o.value for o in service.get_configs_by_category("tone", admin)]
    with pytest.raises(BusinessError, match="not active"):
        service.update_selection("opt_tone_formal", True, user)
    with pytest.raises(NotFoundError):
        service.set_option_active("opt_missing", True)


def test_admin_views_of_user_selections(service, user, other_user):
    service.update_selection("opt_industry_finance", True, user)
    service.update_selection("opt_industry_education", True, other_user)
    service.update_selection("opt_industry_finance", True, other_user)

    assert [o.value for o in service.get_user_configs(user.user_id, "industry")] == ["finance"]
    with pytest.raises(NotFoundError):
        service.get_user_configs("usr_missing", "industry")

    everyone = {s.username: [o.value for o in s.options] for s in service.get_all_users_configs("industry")}
    assert everyone == {"alice": ["finance"], "bob": ["education", "finance"]}


def test_create_option_normalises_value_and_rejects_duplicates(service):
    option = service.create_option(CreateOptionRequest(category="tone", name="Witty", value=" Witty "))
    assert option.value == "witty"
    assert option.display_label == "Witty"
    assert "witty" in [o.value for o in service.get_all_configs_by_category("tone")]
    with pytest.raises(BusinessError, match="already exists"):
        service.create_option(CreateOptionRequest(category="tone", name="Witty 2", value="WITTY"))


def test_is_valid_option(service, config_store):
    assert service.is_valid_option(ConfigCategory.CONTENT_TYPE, "Blog")
    assert not service.is_valid_option(ConfigCategory.CONTENT_TYPE, "podcast")


def test_empty_category_accepts_any_value(user_store, config_store):
    service = ConfigService(config_store, user_store)
    assert service.is_valid_option(ConfigCategory.CONTENT_TYPE, "podcast")


def test_catalog_read_failures_are_internal_errors(service, catalog, monkeypatch):
    def broken(category, active_only=True):
        raise OSError("disk unavailable")

    monkeypatch.setattr(catalog, "list_options", broken)
    with pytest.raises(InternalServerError, match="Failed to retrieve configurations"):
        service.get_all_configs_by_category("tone")
    # Bad input is still reported as such
    with pytest.raises(BusinessError, match="Unknown configuration category"):
        service.get_all_configs_by_category("colour")
