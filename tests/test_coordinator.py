from __future__ import annotations

import asyncio
import base64
import json
from pathlib import Path

import pytest

from rpage.domain.automations import Automation, AutomationNotFoundError, AutomationService
from rpage.domain.logs.service import LogService
from rpage.domain.outputs.service import OutputService
from rpage.infrastructure.database import session_scope
from rpage.runs import CompleteEvent, EmptyScriptError, LogEvent, RunAlreadyActiveError, RunCoordinator, StatusEvent
from rpage.sandbox import SandboxError, ScriptSandbox
from rpage.sandbox.protocol import error_message, log_message, result_message

from tests.conftest import FAILING_SCRIPT, SIMPLE_SCRIPT, ScriptedSandbox, create_automation

pytestmark = pytest.mark.asyncio


def _coordinator(sandbox, tmp_path: Path, *, idle_reset_delay: float = 60.0) -> RunCoordinator:
    return RunCoordinator(sandbox, outputs_dir=tmp_path / "outputs", idle_reset_delay=idle_reset_delay)


async def _status(automation_id: str) -> str:
    async with session_scope() as session:
        automation = await AutomationService.with_session(session).get_automation(automation_id)
    return automation.status


async def _logs(automation_id: str):
    async with session_scope() as session:
        return await LogService.with_session(session).list_for_automation(automation_id)


async def _outputs(automation_id: str):
    async with session_scope() as session:
        return await OutputService.with_session(session).list_for_automation(automation_id)


async def test_successful_run_streams_and_persists(automation: Automation, tmp_path: Path) -> None:
    coordinator = _coordinator(ScriptSandbox(), tmp_path)
    try:
        handle = await coordinator.submit_run(automation.id, automation.name, SIMPLE_SCRIPT)
        events = [event async for event in handle.events()]
    finally:
        await coordinator.shutdown()

    assert isinstance(events[0], StatusEvent)
    assert events[0].status == "running"
    assert events[0].message == "Starting automation..."
    assert [event.message for event in events[1:-1]] == ["hi"]
    complete = events[-1]
    assert isinstance(complete, CompleteEvent)
    assert complete.success is True
    assert complete.result == {"ok": True}
    assert complete.output.startswith("hi\nTotal execution time: ")
    assert complete.output.endswith('\n\nReturned result: {\n  "ok": true\n}')
    assert complete.execution_time >= 0

    assert await _status(automation.id) == "completed"
    logs = await _logs(automation.id)
    assert [log.status for log in logs] == ["completed"]
    assert logs[0].output == complete.output
    assert await _outputs(automation.id) == []


async def test_failing_run_reports_error(automation: Automation, tmp_path: Path) -> None:
    coordinator = _coordinator(ScriptSandbox(), tmp_path)
    try:
        handle = await coordinator.submit_run(automation.id, automation.name, FAILING_SCRIPT)
        events = [event async for event in handle.events()]
    finally:
        await coordinator.shutdown()

    assert [event.type for event in events] == ["status", "log", "complete"]
    complete = events[-1]
    assert complete.success is False
    assert complete.error == "boom"
    assert complete.output == "Error: boom"

    assert await _status(automation.id) == "failed"
    logs = await _logs(automation.id)
    assert [log.status for log in logs] == ["failed"]
    assert logs[0].output == "Error: boom\n\nabout to fail"


async def test_screenshot_result_is_saved_as_artifact(automation: Automation, tmp_path: Path) -> None:
    sandbox = ScriptedSandbox(
        [
            log_message("Taking screenshot and saving to: /tmp/outputs/from-log.png"),
            result_message({"screenshot": "wiki.png", "screenshot_path": "/tmp/outputs/wiki.png"}),
        ]
    )
    coordinator = _coordinator(sandbox, tmp_path)
    try:
        handle = await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")
        outcome = await handle.wait()
    finally:
        await coordinator.shutdown()

    assert outcome.success is True
    assert outcome.screenshot_filename == "wiki.png"
    outputs = await _outputs(automation.id)
    assert [(output.name, output.type) for output in outputs] == [("wiki.png", "screenshot")]
    assert '"source": "Test automation"' in outputs[0].data


async def test_screenshot_bytes_from_worker_are_stored_as_image_data(automation: Automation, tmp_path: Path) -> None:
    image = b"\x89PNG\r\n\x1a\n" + b"\x00" * 3000
    script = 'async def run():\n    return {"screenshot": b"\\x89PNG\\r\\n\\x1a\\n" + b"\\x00" * 3000}\n'
    coordinator = _coordinator(ScriptSandbox(), tmp_path)
    try:
        handle = await coordinator.submit_run(automation.id, automation.name, script)
        outcome = await handle.wait()
    finally:
        await coordinator.shutdown()

    assert outcome.success is True
    outputs = await _outputs(automation.id)
    assert len(outputs) == 1
    assert len(outputs[0].name) < 200
    assert outputs[0].name.startswith("Screenshot for Test automation at ")
    data = json.loads(outputs[0].data)
    assert data["encoding"] == "base64"
    assert base64.b64decode(data["image_data"]) == image


async def test_log_hint_is_used_without_structured_path(automation: Automation, tmp_path: Path) -> None:
    sandbox = ScriptedSandbox(
        [
            log_message("Taking screenshot and saving to: /tmp/outputs/from-log.png"),
            result_message({"title": "Example"}),
        ]
    )
    coordinator = _coordinator(sandbox, tmp_path)
    try:
        handle = await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")
        outcome = await handle.wait()
    finally:
        await coordinator.shutdown()

    assert outcome.screenshot_filename == "from-log.png"


async def test_persistence_failure_does_not_change_outcome(
    automation: Automation, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def broken_save(self, *args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(OutputService, "save_output", broken_save)
    sandbox = ScriptedSandbox([result_message({"screenshot": {"name": "shot.png"}})])
    coordinator = _coordinator(sandbox, tmp_path)
    try:
        handle = await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")
        outcome = await handle.wait()
    finally:
        await coordinator.shutdown()

    assert outcome.success is True
    assert await _status(automation.id) == "completed"
    assert await _outputs(automation.id) == []


async def test_sandbox_failure_becomes_failed_outcome(automation: Automation, tmp_path: Path) -> None:
    sandbox = ScriptedSandbox([log_message("partial")], error=SandboxError("worker crashed"))
    coordinator = _coordinator(sandbox, tmp_path)
    try:
        handle = await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")
        outcome = await handle.wait()
    finally:
        await coordinator.shutdown()

    assert outcome.success is False
    assert outcome.error == "worker crashed"
    assert await _status(automation.id) == "failed"


async def test_script_error_message_from_worker(automation: Automation, tmp_path: Path) -> None:
    sandbox = ScriptedSandbox([error_message("Timeout 30000ms exceeded", error_type="TimeoutError")])
    coordinator = _coordinator(sandbox, tmp_path)
    try:
        handle = await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")
        outcome = await handle.wait()
    finally:
        await coordinator.shutdown()

    assert outcome.error == "Timeout 30000ms exceeded"


async def test_empty_script_is_rejected(automation: Automation, tmp_path: Path) -> None:
    sandbox = ScriptedSandbox([])
    coordinator = _coordinator(sandbox, tmp_path)

    with pytest.raises(EmptyScriptError):
        await coordinator.submit_run(automation.id, automation.name, "   ")

    assert sandbox.calls == []
    assert await _status(automation.id) == "idle"


async def test_unknown_automation_is_rejected(database: None, tmp_path: Path) -> None:
    coordinator = _coordinator(ScriptedSandbox([]), tmp_path)

    with pytest.raises(AutomationNotFoundError):
        await coordinator.submit_run("missing", "Missing", SIMPLE_SCRIPT)

    assert coordinator.active_runs() == []


async def test_concurrent_run_of_same_automation_is_rejected(automation: Automation, tmp_path: Path) -> None:
    gate = asyncio.Event()
    sandbox = ScriptedSandbox([result_message(None)], gate=gate)
    coordinator = _coordinator(sandbox, tmp_path)
    try:
        handle = await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")
        assert coordinator.active_runs() == [automation.id]
        assert await _status(automation.id) == "running"

        with pytest.raises(RunAlreadyActiveError):
            await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")

        gate.set()
        first = await handle.wait()
        assert first.success is True
        assert coordinator.active_runs() == []

        second = await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")
        assert (await second.wait()).success is True
    finally:
        await coordinator.shutdown()

    assert len(sandbox.calls) == 2


async def test_runs_of_different_automations_are_independent(automation: Automation, tmp_path: Path) -> None:
    other = await create_automation("t2", name="Other")
    coordinator = _coordinator(ScriptedSandbox([log_message("x"), result_message(1)]), tmp_path)
    try:
        first = await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")
        second = await coordinator.submit_run(other.id, other.name, "async def run(): ...")
        outcomes = await asyncio.gather(first.wait(), second.wait())
    finally:
        await coordinator.shutdown()

    assert [outcome.success for outcome in outcomes] == [True, True]
    assert [log.automation_name for log in await _logs(other.id)] == ["Other"]


async def test_status_returns_to_idle_after_delay(automation: Automation, tmp_path: Path) -> None:
    coordinator = _coordinator(ScriptedSandbox([result_message(None)]), tmp_path, idle_reset_delay=0.05)
    try:
        handle = await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")
        await handle.wait()
        assert await _status(automation.id) == "completed"

        await asyncio.sleep(0.3)
        assert await _status(automation.id) == "idle"
    finally:
        await coordinator.shutdown()


async def test_run_completes_without_a_reader(automation: Automation, tmp_path: Path) -> None:
    coordinator = _coordinator(ScriptedSandbox([log_message("a"), log_message("b"), result_message({})]), tmp_path)
    try:
        handle = await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")
        await handle.task
    finally:
        await coordinator.shutdown()

    assert handle.outcome is not None
    assert handle.outcome.success is True
    assert [log.status for log in await _logs(automation.id)] == ["completed"]


async def test_shutdown_fails_in_flight_runs(automation: Automation, tmp_path: Path) -> None:
    sandbox = ScriptedSandbox([log_message("working")], gate=asyncio.Event())
    coordinator = _coordinator(sandbox, tmp_path)
    handle = await coordinator.submit_run(automation.id, automation.name, "async def run(): ...")
    await asyncio.sleep(0.05)

    await coordinator.shutdown()

    events = [event async for event in handle.events()]
    assert isinstance(events[1], LogEvent)
    assert events[-1].success is False
    assert events[-1].error == "Run cancelled during shutdown"
    assert coordinator.active_runs() == []
    assert await _status(automation.id) == "failed"
