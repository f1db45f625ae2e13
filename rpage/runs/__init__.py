"""Run coordination and the live event protocol."""

from .coordinator import (
    EmptyScriptError,
    RunAlreadyActiveError,
    RunCoordinator,
    RunError,
    RunHandle,
    ScriptExecutionError,
)
from .events import CompleteEvent, LogEvent, StatusEvent, decode_event, event_message, parse_event

__all__ = [
    "CompleteEvent",
    "EmptyScriptError",
    "LogEvent",
    "RunAlreadyActiveError",
    "RunCoordinator",
    "RunError",
    "RunHandle",
    "ScriptExecutionError",
    "StatusEvent",
    "decode_event",
    "event_message",
    "parse_event",
]
