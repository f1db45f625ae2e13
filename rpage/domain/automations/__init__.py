"""Automation records and lifecycle status."""

from .exceptions import (
    AutomationAlreadyExistsError,
    AutomationError,
    AutomationNotFoundError,
    InvalidStatusTransitionError,
)
from .models import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_IDLE,
    STATUS_RUNNING,
    Automation,
)
from .service import AutomationService

__all__ = [
    "Automation",
    "AutomationAlreadyExistsError",
    "AutomationError",
    "AutomationNotFoundError",
    "AutomationService",
    "InvalidStatusTransitionError",
    "STATUS_COMPLETED",
    "STATUS_FAILED",
    "STATUS_IDLE",
    "STATUS_RUNNING",
]
