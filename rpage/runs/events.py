"""Server-sent event payloads for a single run.

A stream is always ``status`` → ``log``* → ``complete``; each event is framed
as ``data: <json>`` followed by a blank line.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

FRAME_DELIMITER = "\n\n"
DATA_PREFIX = "data:"

EVENT_STATUS = "status"
EVENT_LOG = "log"
EVENT_COMPLETE = "complete"


class EventDecodeError(ValueError):
    """A frame carried a payload that is not a JSON object."""


class _Event(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatusEvent(_Event):
    type: Literal["status"] = EVENT_STATUS
    status: str
    message: str = ""


class LogEvent(_Event):
    type: Literal["log"] = EVENT_LOG
    message: str


class CompleteEvent(_Event):
    type: Literal["complete"] = EVENT_COMPLETE
    success: bool
    output: str = ""
    result: Any = None
    screenshot_filename: Optional[str] = None
    execution_time: float = 0.0
    error: Optional[str] = None


RunEvent = Annotated[Union[StatusEvent, LogEvent, CompleteEvent], Field(discriminator="type")]

_event_adapter: TypeAdapter[RunEvent] = TypeAdapter(RunEvent)


def event_message(event: _Event) -> dict[str, str]:
    """Message for ``EventSourceResponse``, which frames it as ``data: <json>`` and a blank line."""
    return {"data": event.model_dump_json(by_alias=True, exclude_none=True)}


def decode_event(frame: str) -> Optional[dict[str, Any]]:
    """Parse one frame into its JSON payload; frames without ``data:`` lines yield None."""
    data_lines = []
    for line in frame.splitlines():
        if line.startswith(DATA_PREFIX):
            value = line[len(DATA_PREFIX) :]
            data_lines.append(value[1:] if value.startswith(" ") else value)
    if not data_lines:
        return None
    raw = "\n".join(data_lines)
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise EventDecodeError(f"Malformed event payload: {raw[:200]!r}") from exc
    if not isinstance(payload, dict):
        raise EventDecodeError(f"Event payload is not an object: {raw[:200]!r}")
    return payload


def parse_event(payload: dict[str, Any]) -> Optional[StatusEvent | LogEvent | CompleteEvent]:
    """Typed view of a decoded payload; unknown or invalid event types yield None."""
    try:
        return _event_adapter.validate_python(payload)
    except ValidationError:
        return None
