"""Persisted run artifacts, paginated reads and retention."""

from .models import SCREENSHOT_TYPE, OutputArtifact, OutputPage, RetentionResult
from .service import OutputService, stringify_data

__all__ = [
    "OutputArtifact",
    "OutputPage",
    "OutputService",
    "RetentionResult",
    "SCREENSHOT_TYPE",
    "stringify_data",
]
