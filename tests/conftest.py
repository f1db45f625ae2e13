"""Shared pytest fixtures."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, Optional

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sse_starlette.sse import AppStatus

from rpage.core.config import Settings, get_settings
from rpage.core.container import ApplicationContainer, get_container
from rpage.domain.automations import Automation, AutomationService
from rpage.infrastructure.database import dispose_engine, init_db, session_scope
from rpage.main import create_app
from rpage.sandbox import SandboxMessage

SIMPLE_SCRIPT = """
async def run():
    console.log("hi")
    return {"ok": True}
"""

FAILING_SCRIPT = """
async def run():
    console.log("about to fail")
    raise RuntimeError("boom")
"""


@pytest.fixture()
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings pointing at a throwaway data directory."""

    monkeypatch.setenv("RPAGE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("RUNS__SEED_SAMPLE_AUTOMATION", "false")
    monkeypatch.setenv("RUNS__IDLE_RESET_DELAY", "60")
    monkeypatch.setenv("RUNS__SHUTDOWN_GRACE_PERIOD", "1")
    monkeypatch.setenv("RETENTION__SWEEP_ON_STARTUP", "false")
    monkeypatch.delenv("DATABASE__URL", raising=False)
    get_settings.cache_clear()
    get_container.cache_clear()
    yield get_settings()
    get_settings.cache_clear()
    get_container.cache_clear()


@pytest_asyncio.fixture()
async def database(settings: Settings) -> AsyncIterator[None]:
    await dispose_engine()
    await init_db()
    yield
    await dispose_engine()


async def create_automation(automation_id: str = "t1", name: str = "Test automation", script: str = SIMPLE_SCRIPT) -> Automation:
    async with session_scope() as session:
        return await AutomationService.with_session(session).create_automation(
            automation_id=automation_id,
            name=name,
            script=script,
        )


@pytest_asyncio.fixture()
async def automation(database: None) -> Automation:
    return await create_automation()


class ScriptedSandbox:
    """Stands in for the worker process and replays fixed messages."""

    def __init__(
        self,
        messages: list[SandboxMessage],
        *,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.messages = messages
        self.error = error
        self.gate = gate
        self.calls: list[tuple[str, Path]] = []

    async def execute(self, script: str, outputs_dir: Path) -> AsyncIterator[SandboxMessage]:
        self.calls.append((script, outputs_dir))
        for message in self.messages:
            await asyncio.sleep(0)
            yield message
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error


@pytest.fixture(autouse=True)
def reset_sse_exit_event() -> None:
    # The exit event binds to the first loop that streams; each test runs its own loop.
    AppStatus.should_exit_event = None


@pytest_asyncio.fixture()
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    """Application with its lifespan running (tables created, defaults inserted)."""

    await dispose_engine()
    application = create_app(ApplicationContainer.from_settings(settings), configure_logs=False)
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


def sse_body(*payloads: dict[str, Any]) -> bytes:
    return "".join(f"data: {json.dumps(payload, ensure_ascii=False)}\n\n" for payload in payloads).encode("utf-8")
