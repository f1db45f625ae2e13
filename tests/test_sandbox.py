from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from rpage.sandbox import KIND_ERROR, KIND_LOG, KIND_RESULT, OutputFS, SandboxError, SandboxMessage, ScriptConsole, ScriptSandbox
from rpage.sandbox.runner import ScriptContractError, execute_script, serve


def test_console_joins_arguments_and_encodes_structures() -> None:
    lines: list[str] = []
    console = ScriptConsole(lines.append)

    console.log("count:", 3, {"a": 1})
    console.error("bad", ["x"])

    assert lines == ['count: 3 {"a": 1}', 'bad ["x"]']


def test_output_fs_rejects_paths_outside_root(tmp_path: Path) -> None:
    fs = OutputFS(tmp_path / "outputs")

    written = fs.write_text("nested/report.txt", "hello")

    assert Path(written).read_text() == "hello"
    assert fs.listdir("nested") == ["report.txt"]
    with pytest.raises(ValueError):
        fs.path("../escape.txt")


def test_non_protocol_lines_are_treated_as_logs() -> None:
    assert SandboxMessage.from_json("plain text") == SandboxMessage(kind=KIND_LOG, message="plain text")
    assert SandboxMessage.from_json('{"kind": "other"}').kind == KIND_LOG
    assert SandboxMessage.from_json('{"kind": "result", "value": [1]}').value == [1]


def test_result_bytes_are_base64_encoded() -> None:
    encoded = SandboxMessage(kind=KIND_RESULT, value={"image": b"\x89PNG"}).to_json()

    assert json.loads(encoded) == {"kind": "result", "value": {"image": "iVBORw=="}}


@pytest.mark.asyncio
async def test_execute_script_captures_print_and_console(tmp_path: Path) -> None:
    messages: list[SandboxMessage] = []
    script = """
async def run():
    print("from print")
    console.log("from console", {"n": 1})
    fs.write_text("note.txt", "saved")
    return {"ok": True}
"""

    value = await execute_script(script, tmp_path, messages.append)

    assert value == {"ok": True}
    assert [message.message for message in messages] == ["from print", 'from console {"n": 1}']
    assert (tmp_path / "note.txt").read_text() == "saved"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "script",
    [
        "x = 1\n",
        "def run():\n    return 1\n",
    ],
)
async def test_execute_script_requires_async_run(tmp_path: Path, script: str) -> None:
    with pytest.raises(ScriptContractError):
        await execute_script(script, tmp_path, lambda message: None)


@pytest.mark.asyncio
async def test_serve_reports_errors_as_protocol_messages(tmp_path: Path) -> None:
    channel = io.StringIO()
    job = {"script": "async def run():\n    raise RuntimeError('boom')\n", "outputs_dir": str(tmp_path)}

    assert await serve(job, channel) == 0

    lines = [json.loads(line) for line in channel.getvalue().splitlines()]
    assert lines[-1]["kind"] == KIND_ERROR
    assert lines[-1]["message"] == "boom"
    assert lines[-1]["error_type"] == "RuntimeError"
    assert "RuntimeError: boom" in lines[-1]["traceback"]


async def _collect(sandbox: ScriptSandbox, script: str, outputs_dir: Path) -> list[SandboxMessage]:
    messages = []
    async for message in sandbox.execute(script, outputs_dir):
        messages.append(message)
    return messages


@pytest.mark.asyncio
async def test_worker_process_streams_logs_then_result(tmp_path: Path) -> None:
    script = """
async def run():
    console.log("first")
    console.log("second")
    return {"title": "Example"}
"""

    messages = await _collect(ScriptSandbox(), script, tmp_path)

    assert [message.kind for message in messages] == [KIND_LOG, KIND_LOG, KIND_RESULT]
    assert [message.message for message in messages[:2]] == ["first", "second"]
    assert messages[-1].value == {"title": "Example"}


@pytest.mark.asyncio
async def test_worker_process_reports_script_failure(tmp_path: Path) -> None:
    script = "async def run():\n    console.log('before')\n    raise ValueError('bad input')\n"

    messages = await _collect(ScriptSandbox(), script, tmp_path)

    assert messages[0].message == "before"
    assert messages[-1].kind == KIND_ERROR
    assert messages[-1].message == "bad input"
    assert messages[-1].error_type == "ValueError"


@pytest.mark.asyncio
async def test_worker_crash_raises_sandbox_error(tmp_path: Path) -> None:
    script = "import os\n\nasync def run():\n    os._exit(3)\n"

    with pytest.raises(SandboxError, match="exited with code 3"):
        await _collect(ScriptSandbox(), script, tmp_path)
