from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from rpage.__main__ import main
from rpage.core.config import Settings
from rpage.domain.automations import Automation
from rpage.domain.common.time import utcnow
from rpage.domain.outputs import OutputService
from rpage.domain.settings import SettingService, coerce_value
from rpage.infrastructure.database import dispose_engine, init_db, session_scope
from rpage.services import run_retention_sweep, sweep_on_startup

from tests.conftest import create_automation


def test_coerce_value() -> None:
    assert coerce_value("true") is True
    assert coerce_value("false") is False
    assert coerce_value("7") == 7
    assert coerce_value("1.5") == 1.5
    assert coerce_value("dark") == "dark"
    assert coerce_value("") == ""


async def _store_days(raw) -> None:
    async with session_scope() as session:
        await SettingService.with_session(session).save_all({"keepOutputDays": raw})


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("raw", "expected"),
    [(0, 0), (30, 30), ("soon", 7), (-2, 7), (True, 7)],
)
async def test_retention_days_setting(database: None, raw, expected: int) -> None:
    await _store_days(raw)

    async with session_scope() as session:
        assert await SettingService.with_session(session).get_retention_days(7) == expected


@pytest.mark.asyncio
async def test_retention_days_default_when_unset(database: None) -> None:
    async with session_scope() as session:
        assert await SettingService.with_session(session).get_retention_days(5) == 5


@pytest.mark.asyncio
async def test_sweep_reads_stored_days(automation: Automation, settings: Settings) -> None:
    now = utcnow()
    async with session_scope() as session:
        service = OutputService.with_session(session)
        await service.save_output(automation.id, {}, "three days", "screenshot", timestamp=now - timedelta(days=3))
        await service.save_output(automation.id, {}, "one day", "screenshot", timestamp=now - timedelta(days=1))
    await _store_days(2)

    result = await run_retention_sweep(settings)

    assert result.deleted == 1
    assert result.old_outputs_removed == 1


@pytest.mark.asyncio
async def test_startup_sweep_never_raises(settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    async def broken(*args, **kwargs):
        raise RuntimeError("database locked")

    monkeypatch.setattr("rpage.services.retention.run_retention_sweep", broken)

    assert await sweep_on_startup(settings) is None


def test_cli_version(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--version"]) == 0

    assert capsys.readouterr().out.startswith("rpage ")


def test_cli_cleanup(settings: Settings, capsys: pytest.CaptureFixture[str]) -> None:
    async def seed() -> None:
        await init_db()
        await create_automation()
        async with session_scope() as session:
            await OutputService.with_session(session).save_output("t1", "plain", "notes", "text")
        await dispose_engine()

    asyncio.run(seed())

    assert main(["--log-level", "WARNING", "cleanup", "--days", "7"]) == 0

    assert "Cleaned up 1 outputs (1 non-screenshots, 0 old outputs)" in capsys.readouterr().out
