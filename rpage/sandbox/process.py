"""Async driver that runs one script in a child Python process."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import AsyncIterator, Optional

from .protocol import SandboxMessage

logger = logging.getLogger(__name__)

WORKER_MODULE = "rpage.sandbox.runner"
PACKAGE_ROOT = Path(__file__).resolve().parents[2]


class SandboxError(RuntimeError):
    """The worker process died or broke the message protocol."""


class ScriptSandbox:
    def __init__(
        self,
        python_executable: Optional[str] = None,
        max_message_bytes: int = 32 * 1024 * 1024,
        stderr_tail_chars: int = 2000,
    ) -> None:
        self.python_executable = python_executable or sys.executable
        self.max_message_bytes = max_message_bytes
        self.stderr_tail_chars = stderr_tail_chars

    def _environment(self) -> dict[str, str]:
        env = os.environ.copy()
        existing = env.get("PYTHONPATH")
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(PACKAGE_ROOT), existing]))
        env["PYTHONUNBUFFERED"] = "1"
        return env

    def _tail(self, stderr: bytes) -> str:
        text = stderr.decode("utf-8", errors="replace").strip()
        return text[-self.stderr_tail_chars :] if text else ""

    async def execute(self, script: str, outputs_dir: Path) -> AsyncIterator[SandboxMessage]:
        """Yield log messages as they arrive, then exactly one result or error message."""
        outputs_dir = Path(outputs_dir)
        outputs_dir.mkdir(parents=True, exist_ok=True)
        process = await asyncio.create_subprocess_exec(
            self.python_executable,
            "-m",
            WORKER_MODULE,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            limit=self.max_message_bytes,
            env=self._environment(),
        )
        logger.debug("Started script worker pid=%s", process.pid)
        stderr_task = asyncio.create_task(process.stderr.read())
        finished = False
        try:
            job = json.dumps({"script": script, "outputs_dir": str(outputs_dir.resolve())})
            process.stdin.write(job.encode("utf-8"))
            await process.stdin.drain()
            process.stdin.close()

            while True:
                try:
                    raw = await process.stdout.readline()
                except ValueError as exc:
                    raise SandboxError(
                        f"Script worker emitted a message larger than {self.max_message_bytes} bytes"
                    ) from exc
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                if not line.strip() or finished:
                    continue
                message = SandboxMessage.from_json(line)
                yield message
                if message.terminal:
                    finished = True

            returncode = await process.wait()
            stderr = self._tail(await stderr_task)
            if stderr:
                logger.debug("Script worker stderr: %s", stderr)
            if not finished:
                detail = f": {stderr}" if stderr else ""
                raise SandboxError(f"Script process exited with code {returncode} without a result{detail}")
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()
            if not stderr_task.done():
                stderr_task.cancel()
