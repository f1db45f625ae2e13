"""Run log entries written once per finished run."""

from .models import LogEntry, LogPage
from .service import LogService

__all__ = ["LogEntry", "LogPage", "LogService"]
