"""Client side of the run event stream."""

from __future__ import annotations

import asyncio
import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from rpage.runs.events import (
    EVENT_COMPLETE,
    EVENT_LOG,
    EVENT_STATUS,
    FRAME_DELIMITER,
    EventDecodeError,
    decode_event,
)

from .api import ApiError, RpageClient

logger = logging.getLogger(__name__)


class EventStreamDecoder:
    """Turns arbitrary byte chunks into event payloads, keeping any partial frame."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, chunk: bytes | str) -> list[dict[str, Any]]:
        text = chunk if isinstance(chunk, str) else self._decoder.decode(chunk)
        self._buffer = (self._buffer + text).replace("\r\n", "\n")
        frames = self._buffer.split(FRAME_DELIMITER)
        self._buffer = frames.pop()
        return self._parse_frames(frames)

    def flush(self) -> list[dict[str, Any]]:
        remainder = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if not remainder.strip():
            return []
        return self._parse_frames([remainder])

    @staticmethod
    def _parse_frames(frames: list[str]) -> list[dict[str, Any]]:
        payloads = []
        for frame in frames:
            if not frame.strip():
                continue
            try:
                payload = decode_event(frame)
            except EventDecodeError as exc:
                logger.warning("Skipping malformed event frame: %s", exc)
                continue
            if payload is not None:
                payloads.append(payload)
        return payloads


@dataclass(slots=True)
class RunOutcome:
    success: bool
    output: str = ""
    result: Any = None
    screenshot_filename: Optional[str] = None
    execution_time: Optional[float] = None
    error: Optional[str] = None
    timed_out: bool = False
    logs: list[str] = field(default_factory=list)


class RunStreamConsumer:
    """Submits a run and resolves on its first ``complete`` event.

    A client-side timeout only stops listening; the server keeps executing.
    """

    def __init__(
        self,
        client: RpageClient,
        *,
        timeout: Optional[float] = None,
        on_event: Optional[Callable[[dict[str, Any]], None]] = None,
    ) -> None:
        self.client = client
        self.timeout = timeout if timeout is not None else client.run_timeout
        self.on_event = on_event

    async def run(self, automation_id: str, name: str, script: str) -> RunOutcome:
        logs: list[str] = []
        try:
            return await asyncio.wait_for(self._consume(automation_id, name, script, logs), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Automation %s timed out after %s seconds", automation_id, self.timeout)
            message = f"Automation timed out after {self.timeout:g} seconds"
            return RunOutcome(
                success=False,
                output=f"Error: {message}",
                error=message,
                timed_out=True,
                logs=logs,
            )
        except ApiError as exc:
            logger.error("Failed to run automation %s: %s", automation_id, exc)
            message = str(exc.detail or exc)
            return RunOutcome(success=False, output=f"Error: {message}", error=message, logs=logs)

    async def _consume(self, automation_id: str, name: str, script: str, logs: list[str]) -> RunOutcome:
        async with self.client.open_run_stream(automation_id, name, script) as response:
            if "text/event-stream" not in response.headers.get("content-type", ""):
                body = await response.aread()
                return self._from_json_body(body, logs)

            decoder = EventStreamDecoder()
            async for chunk in response.aiter_bytes():
                for payload in decoder.feed(chunk):
                    outcome = self._dispatch(payload, logs)
                    if outcome is not None:
                        return outcome
            for payload in decoder.flush():
                outcome = self._dispatch(payload, logs)
                if outcome is not None:
                    return outcome

        message = "Stream ended without a completion event"
        return RunOutcome(success=False, output=f"Error: {message}", error=message, logs=logs)

    def _dispatch(self, payload: dict[str, Any], logs: list[str]) -> Optional[RunOutcome]:
        if self.on_event is not None:
            try:
                self.on_event(payload)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Event callback failed")
        event_type = payload.get("type")
        if event_type == EVENT_LOG:
            logs.append(str(payload.get("message", "")))
        elif event_type == EVENT_STATUS:
            logger.debug("Run status: %s", payload.get("status"))
        elif event_type == EVENT_COMPLETE:
            return RunOutcome(
                success=bool(payload.get("success")),
                output=payload.get("output") or "",
                result=payload.get("result"),
                screenshot_filename=payload.get("screenshotFilename"),
                execution_time=payload.get("executionTime"),
                error=payload.get("error"),
                logs=logs,
            )
        else:
            logger.debug("Ignoring unknown event type %r", event_type)
        return None

    @staticmethod
    def _from_json_body(body: bytes, logs: list[str]) -> RunOutcome:
        try:
            payload = json.loads(body or b"{}")
        except json.JSONDecodeError:
            message = "Unexpected non-JSON response"
            return RunOutcome(success=False, output=f"Error: {message}", error=message, logs=logs)
        data = payload.get("data") if isinstance(payload, dict) else None
        success = bool(payload.get("success")) if isinstance(payload, dict) else False
        return RunOutcome(
            success=success,
            output=str(payload.get("output", "")) if isinstance(payload, dict) else "",
            result=data,
            error=None if success else (payload.get("error") if isinstance(payload, dict) else None),
            logs=logs,
        )
