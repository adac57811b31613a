"""Demo accounts and the default option catalog."""

from __future__ import annotations

import logging

from autocontent.auth.models import Role
from autocontent.auth.service import AuthService
from autocontent.auth.store import UserStore, get_user_store
from autocontent.config import Settings
from autocontent.configs.models import ConfigCategory, ConfigOption
from autocontent.configs.store import ConfigStore, get_config_store

logger = logging.getLogger(__name__)

DEMO_USERS = (
    ("admin", "admin@autocontent.local", "admin123", Role.ADMIN, "System", "Administrator"),
    ("user", "user@autocontent.local", "user123", Role.USER, "Demo", "User"),
)

# category -> [(value, label)] in display order
DEFAULT_CATALOG: dict[ConfigCategory, list[tuple[str, str]]] = {
    ConfigCategory.TONE: [
        ("professional", "Professional"),
        ("friendly", "Friendly"),
        ("formal", "Formal"),
        ("casual", "Casual"),
        ("persuasive", "Persuasive"),
    ],
    ConfigCategory.INDUSTRY: [
        ("technology", "Technology"),
        ("ecommerce", "E-commerce"),
        ("education", "Education"),
        ("healthcare", "Healthcare"),
        ("finance", "Finance"),
        ("real_estate", "Real Estate"),
    ],
    ConfigCategory.LANGUAGE: [
        ("vi", "Tiếng Việt"),
        ("en", "English"),
    ],
    ConfigCategory.TARGET_AUDIENCE: [
        ("general", "General Public"),
        ("business", "Business Owners"),
        ("students", "Students"),
        ("young_adults", "Young Adults"),
        ("professionals", "Professionals"),
    ],
    ConfigCategory.CONTENT_TYPE: [
        ("blog", "Blog Post"),
        ("social", "Social Media Post"),
        ("email", "Email Newsletter"),
        ("product", "Product Description"),
        ("ads", "Advertising Copy"),
    ],
}


def seed_users(users: UserStore, auth: AuthService) -> int:
    created = 0
    for username, email, password, role, first, last in DEMO_USERS:
        if users.get_by_username(username):
            continue
        auth.create_user(username, email, password, role=role, first_name=first, last_name=last)
        logger.info("Created %s account '%s'", role.value, username)
        created += 1
    return created


def seed_catalog(configs: ConfigStore) -> int:
    created = 0
    for category, entries in DEFAULT_CATALOG.items():
        existing = {o.value for o in configs.list_options(category, active_only=False)}
        for order, (value, label) in enumerate(entries, start=1):
            if value in existing:
                continue
            configs.add_option(ConfigOption(
                id=f"opt_{category.value}_{value}",
                category=category,
                name=label,
                value=value,
                label=label,
                display_label=label,
                sort_order=order,
            ))
            created += 1
    if created:
        logger.info("Seeded %d catalog option(s)", created)
    return created


def seed_all(settings: Settings) -> tuple[int, int]:
    """Seed demo accounts and the catalog into the configured stores."""
    users = get_user_store()
    return seed_users(users, AuthService(users, settings)), seed_catalog(get_config_store())
