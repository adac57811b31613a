"""Option catalog (primary configs) and per-user selections."""

from autocontent.configs.models import ConfigCategory, ConfigOption, UserConfigView

__all__ = ["ConfigCategory", "ConfigOption", "UserConfigView"]
