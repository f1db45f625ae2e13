"""SQLAlchemy-backed repository implementations."""

from .automation_repository import SqlAutomationRepository
from .log_repository import SqlLogRepository
from .output_repository import SqlOutputRepository
from .setting_repository import SqlSettingRepository

__all__ = [
    "SqlAutomationRepository",
    "SqlLogRepository",
    "SqlOutputRepository",
    "SqlSettingRepository",
]
