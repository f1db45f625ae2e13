"""Worker entry point: ``python -m rpage.sandbox.runner``.

Reads one job (``{"script": ..., "outputs_dir": ...}``) as JSON from stdin and
writes protocol messages, one JSON object per line, to stdout.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import sys
import traceback
from pathlib import Path
from typing import Any, Callable, TextIO

from .capabilities import ConsoleWriter, OutputFS, PlaywrightManager, ScriptConsole, build_namespace
from .protocol import SandboxMessage, error_message, log_message, result_message

SCRIPT_FILENAME = "<automation>"


class ScriptContractError(RuntimeError):
    """The script does not expose a usable ``async def run()``."""


async def execute_script(script: str, outputs_dir: Path, emit: Callable[[SandboxMessage], None]) -> Any:
    """Run ``script`` in a fresh namespace and return whatever ``run()`` returns."""
    console = ScriptConsole(lambda line: emit(log_message(line)))
    manager = PlaywrightManager()
    namespace = build_namespace(console, OutputFS(outputs_dir), manager)
    writer = ConsoleWriter(console)
    try:
        with contextlib.redirect_stdout(writer):
            exec(compile(script, SCRIPT_FILENAME, "exec"), namespace)  # pylint: disable=exec-used
            entry = namespace.get("run")
            if entry is None or not callable(entry):
                raise ScriptContractError("Script must define an async function named run()")
            if not inspect.iscoroutinefunction(entry):
                raise ScriptContractError("run() must be declared with 'async def'")
            return await entry()
    finally:
        writer.flush()
        await manager.close()


def describe_error(exc: BaseException) -> str:
    message = str(exc)
    return message if message else exc.__class__.__name__


async def serve(job: dict[str, Any], channel: TextIO) -> int:
    def emit(message: SandboxMessage) -> None:
        channel.write(message.to_json() + "\n")
        channel.flush()

    script = job.get("script") or ""
    outputs_dir = Path(job.get("outputs_dir") or "outputs")
    try:
        value = await execute_script(script, outputs_dir, emit)
    except Exception as exc:  # pylint: disable=broad-except
        emit(
            error_message(
                describe_error(exc),
                error_type=exc.__class__.__name__,
                traceback="".join(traceback.format_exception(exc)),
            )
        )
        return 0
    try:
        emit(result_message(value))
    except ValueError as exc:
        emit(error_message(f"Script result is not JSON serializable: {exc}", error_type="ValueError"))
    return 0


def main() -> int:
    channel = sys.stdout
    try:
        job = json.load(sys.stdin)
    except json.JSONDecodeError as exc:
        channel.write(error_message(f"Invalid job payload: {exc}", error_type="JSONDecodeError").to_json() + "\n")
        channel.flush()
        return 2
    return asyncio.run(serve(job, channel))


if __name__ == "__main__":
    sys.exit(main())
