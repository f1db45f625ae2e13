"""Key/value settings consumed by the retention sweep."""

from .service import DEFAULT_SETTINGS, KEEP_OUTPUT_DAYS, SettingService, coerce_value

__all__ = ["DEFAULT_SETTINGS", "KEEP_OUTPUT_DAYS", "SettingService", "coerce_value"]
