"""JSON-lines messages exchanged between the coordinator and a script worker."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

KIND_LOG = "log"
KIND_RESULT = "result"
KIND_ERROR = "error"

TERMINAL_KINDS = frozenset({KIND_RESULT, KIND_ERROR})


def json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


@dataclass(slots=True, frozen=True)
class SandboxMessage:
    kind: str
    message: Optional[str] = None
    value: Any = None
    error_type: Optional[str] = None
    traceback: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS

    def to_json(self) -> str:
        payload: dict[str, Any] = {"kind": self.kind}
        if self.kind == KIND_LOG:
            payload["message"] = self.message or ""
        elif self.kind == KIND_RESULT:
            payload["value"] = self.value
        else:
            payload["message"] = self.message or ""
            if self.error_type:
                payload["error_type"] = self.error_type
            if self.traceback:
                payload["traceback"] = self.traceback
        return json.dumps(payload, ensure_ascii=False, default=json_default)

    @classmethod
    def from_json(cls, line: str) -> "SandboxMessage":
        """Decode one line; anything that is not a protocol message is treated as log text."""
        try:
            payload = json.loads(line)
        except json.JSONDecodeError:
            return cls(kind=KIND_LOG, message=line)
        if not isinstance(payload, dict) or payload.get("kind") not in {KIND_LOG, KIND_RESULT, KIND_ERROR}:
            return cls(kind=KIND_LOG, message=line)
        kind = payload["kind"]
        if kind == KIND_RESULT:
            return cls(kind=kind, value=payload.get("value"))
        return cls(
            kind=kind,
            message=str(payload.get("message") or ""),
            error_type=payload.get("error_type"),
            traceback=payload.get("traceback"),
        )


def log_message(text: str) -> SandboxMessage:
    return SandboxMessage(kind=KIND_LOG, message=text)


def result_message(value: Any) -> SandboxMessage:
    return SandboxMessage(kind=KIND_RESULT, value=value)


def error_message(message: str, *, error_type: Optional[str] = None, traceback: Optional[str] = None) -> SandboxMessage:
    return SandboxMessage(kind=KIND_ERROR, message=message, error_type=error_type, traceback=traceback)
