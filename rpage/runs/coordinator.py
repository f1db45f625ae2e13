"""Run orchestration: status bookkeeping, sandbox driving, persistence and events."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from contextlib import aclosing
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Optional

from rpage.core.config import Settings
from rpage.domain.automations import STATUS_COMPLETED, STATUS_FAILED, AutomationService
from rpage.domain.logs.service import LogService
from rpage.domain.outputs.models import SCREENSHOT_TYPE
from rpage.domain.outputs.service import OutputService
from rpage.infrastructure.database import session_scope
from rpage.sandbox import KIND_ERROR, KIND_LOG, SandboxError, SandboxMessage, ScriptSandbox

from .events import CompleteEvent, LogEvent, StatusEvent, event_message
from .screenshots import extract_screenshot, screenshot_filename, screenshot_hint

logger = logging.getLogger(__name__)

STARTING_MESSAGE = "Starting automation..."
CANCELLED_MESSAGE = "Run cancelled during shutdown"

_CLOSED = object()


class RunError(RuntimeError):
    """Base class for run submission and execution failures."""


class EmptyScriptError(RunError):
    pass


class RunAlreadyActiveError(RunError):
    pass


class ScriptExecutionError(RunError):
    """The script raised; carries the worker's error details."""

    def __init__(self, message: str, *, error_type: Optional[str] = None, traceback: Optional[str] = None) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.traceback = traceback


class RunHandle:
    """Event stream of one run. Intended for a single reader."""

    def __init__(self, automation_id: str, automation_name: str) -> None:
        self.automation_id = automation_id
        self.automation_name = automation_name
        self.task: Optional[asyncio.Task] = None
        self.outcome: Optional[CompleteEvent] = None
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: StatusEvent | LogEvent | CompleteEvent) -> None:
        if self._closed:
            logger.warning("Dropping %s event for finished run %s", event.type, self.automation_id)
            return
        self._queue.put_nowait(event)
        if isinstance(event, CompleteEvent):
            self.outcome = event
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def events(self) -> AsyncIterator[StatusEvent | LogEvent | CompleteEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    async def messages(self) -> AsyncIterator[dict[str, str]]:
        async for event in self.events():
            yield event_message(event)

    async def wait(self) -> CompleteEvent:
        if self.task is not None:
            await asyncio.shield(self.task)
        if self.outcome is None:
            raise RunError(f"Run for automation {self.automation_id} ended without an outcome")
        return self.outcome


class RunCoordinator:
    def __init__(
        self,
        sandbox: ScriptSandbox,
        *,
        outputs_dir: Path,
        idle_reset_delay: float = 3.0,
        screenshot_log_hint: bool = True,
        session_factory: Callable[[], Any] = session_scope,
    ) -> None:
        self.sandbox = sandbox
        self.outputs_dir = Path(outputs_dir)
        self.idle_reset_delay = idle_reset_delay
        self.screenshot_log_hint = screenshot_log_hint
        self._session_scope = session_factory
        self._active: dict[str, RunHandle] = {}
        self._idle_timers: dict[str, asyncio.Task] = {}

    @classmethod
    def from_settings(cls, settings: Settings, sandbox: Optional[ScriptSandbox] = None) -> "RunCoordinator":
        if sandbox is None:
            sandbox = ScriptSandbox(
                python_executable=settings.sandbox.python_executable,
                max_message_bytes=settings.sandbox.max_message_bytes,
                stderr_tail_chars=settings.sandbox.stderr_tail_chars,
            )
        return cls(
            sandbox,
            outputs_dir=settings.outputs_dir,
            idle_reset_delay=settings.runs.idle_reset_delay,
            screenshot_log_hint=settings.runs.screenshot_log_hint,
        )

    def active_runs(self) -> list[str]:
        return sorted(self._active)

    async def submit_run(self, automation_id: str, name: str, script: str) -> RunHandle:
        """Validate, mark the automation running and start executing in the background."""
        if not script or not script.strip():
            raise EmptyScriptError("Script is required")
        if automation_id in self._active:
            raise RunAlreadyActiveError(f"Automation {automation_id} is already running")

        handle = RunHandle(automation_id, name)
        self._active[automation_id] = handle
        try:
            self._cancel_idle_timer(automation_id)
            async with self._session_scope() as session:
                automation = await AutomationService.with_session(session).mark_running(automation_id)
        except BaseException:
            self._active.pop(automation_id, None)
            raise

        handle.automation_name = automation.name or name
        logger.info("Starting automation %s (%s)", automation_id, handle.automation_name)
        handle.publish(StatusEvent(status="running", message=STARTING_MESSAGE))
        handle.task = asyncio.create_task(self._execute(handle, script), name=f"run-{automation_id}")
        return handle

    async def _execute(self, handle: RunHandle, script: str) -> None:
        logs: list[str] = []
        started = time.perf_counter()
        try:
            result, hint = await self._drive_sandbox(handle, script, logs)
        except asyncio.CancelledError:
            await self._finish_failure(handle, logs, CANCELLED_MESSAGE)
            raise
        except Exception as exc:  # pylint: disable=broad-except
            if isinstance(exc, ScriptExecutionError):
                logger.warning("Automation %s failed: %s", handle.automation_id, exc)
                if exc.traceback:
                    logger.debug("Script traceback for %s:\n%s", handle.automation_id, exc.traceback)
            else:
                logger.exception("Automation %s failed outside the script", handle.automation_id)
            await self._finish_failure(handle, logs, str(exc) or exc.__class__.__name__)
        else:
            await self._finish_success(handle, logs, result, hint, time.perf_counter() - started)
        finally:
            if not handle.closed:
                self._release(handle.automation_id)
                handle.publish(CompleteEvent(success=False, output="Error: run ended unexpectedly"))

    async def _drive_sandbox(self, handle: RunHandle, script: str, logs: list[str]) -> tuple[Any, Optional[str]]:
        hint: Optional[str] = None
        terminal: Optional[SandboxMessage] = None
        async with aclosing(self.sandbox.execute(script, self.outputs_dir)) as messages:
            async for message in messages:
                if message.kind == KIND_LOG:
                    line = message.message or ""
                    logs.append(line)
                    logger.info("[%s] %s", handle.automation_id, line)
                    if self.screenshot_log_hint:
                        detected = screenshot_hint(line)
                        if detected:
                            logger.debug("Detected screenshot filename: %s", detected)
                            hint = detected
                    handle.publish(LogEvent(message=line))
                elif message.terminal:
                    terminal = message
        if terminal is None:
            raise SandboxError("Script process ended without a result")
        if terminal.kind == KIND_ERROR:
            raise ScriptExecutionError(
                terminal.message or "Script failed",
                error_type=terminal.error_type,
                traceback=terminal.traceback,
            )
        return terminal.value, hint

    async def _finish_success(
        self,
        handle: RunHandle,
        logs: list[str],
        result: Any,
        hint: Optional[str],
        execution_time: float,
    ) -> None:
        # The structured result field wins over anything scraped from the logs.
        filename = screenshot_filename(result) or hint
        output = (
            "\n".join(logs)
            + f"\nTotal execution time: {execution_time:.2f} seconds"
            + "\n\nReturned result: "
            + json.dumps(result, indent=2, ensure_ascii=False, default=str)
        )
        await self._set_status(handle, STATUS_COMPLETED)
        await self._write_log(handle, STATUS_COMPLETED, output)
        await self._save_screenshot(handle, result)
        self._release(handle.automation_id)
        logger.info("Automation %s completed in %.2f seconds", handle.automation_id, execution_time)
        handle.publish(
            CompleteEvent(
                success=True,
                output=output,
                result=result,
                screenshot_filename=filename,
                execution_time=round(execution_time, 2),
            )
        )

    async def _finish_failure(self, handle: RunHandle, logs: list[str], message: str) -> None:
        await self._set_status(handle, STATUS_FAILED)
        await self._write_log(handle, STATUS_FAILED, f"Error: {message}\n\n" + "\n".join(logs))
        self._release(handle.automation_id)
        handle.publish(CompleteEvent(success=False, output=f"Error: {message}", error=message))

    async def _set_status(self, handle: RunHandle, status: str) -> None:
        try:
            async with self._session_scope() as session:
                await AutomationService.with_session(session).transition(handle.automation_id, status)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to set automation %s status to %s", handle.automation_id, status)

    async def _write_log(self, handle: RunHandle, status: str, output: str) -> None:
        try:
            async with self._session_scope() as session:
                await LogService.with_session(session).create_log(
                    automation_id=handle.automation_id,
                    automation_name=handle.automation_name,
                    status=status,
                    output=output,
                )
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to write %s log for automation %s", status, handle.automation_id)

    async def _save_screenshot(self, handle: RunHandle, result: Any) -> None:
        screenshot = extract_screenshot(result, handle.automation_name)
        if screenshot is None:
            return
        try:
            async with self._session_scope() as session:
                saved = await OutputService.with_session(session).save_output(
                    handle.automation_id,
                    screenshot.data,
                    screenshot.name,
                    SCREENSHOT_TYPE,
                )
            logger.info("Saved screenshot %s as output %s", screenshot.name, saved.id)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to save screenshot for automation %s", handle.automation_id)

    def _release(self, automation_id: str) -> None:
        self._active.pop(automation_id, None)
        self._schedule_idle_reset(automation_id)

    def _schedule_idle_reset(self, automation_id: str) -> None:
        self._cancel_idle_timer(automation_id)
        task = asyncio.create_task(self._reset_after_delay(automation_id), name=f"idle-reset-{automation_id}")
        self._idle_timers[automation_id] = task

        def _forget(done: asyncio.Task) -> None:
            if self._idle_timers.get(automation_id) is done:
                self._idle_timers.pop(automation_id, None)

        task.add_done_callback(_forget)

    def _cancel_idle_timer(self, automation_id: str) -> None:
        timer = self._idle_timers.pop(automation_id, None)
        if timer is not None and not timer.done():
            timer.cancel()

    async def _reset_after_delay(self, automation_id: str) -> None:
        await asyncio.sleep(self.idle_reset_delay)
        if automation_id in self._active:
            return
        try:
            async with self._session_scope() as session:
                if await AutomationService.with_session(session).reset_to_idle(automation_id):
                    logger.debug("Automation %s back to idle", automation_id)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to reset automation %s to idle", automation_id)

    async def shutdown(self, grace_period: float = 0.0) -> None:
        """Stop idle timers and wind down in-flight runs."""
        timers = list(self._idle_timers.values())
        self._idle_timers.clear()
        for timer in timers:
            timer.cancel()

        running = [handle.task for handle in self._active.values() if handle.task is not None]
        if running and grace_period > 0:
            _, pending = await asyncio.wait(running, timeout=grace_period)
            running = list(pending)
        for task in running:
            task.cancel()
        await asyncio.gather(*timers, *running, return_exceptions=True)
        # Failed runs schedule fresh timers while cancelling.
        leftovers = list(self._idle_timers.values())
        self._idle_timers.clear()
        for timer in leftovers:
            timer.cancel()
        await asyncio.gather(*leftovers, return_exceptions=True)
        if running:
            logger.info("Cancelled %s in-flight run(s) on shutdown", len(running))
