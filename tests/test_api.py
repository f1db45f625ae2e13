from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient

from rpage.client.stream import EventStreamDecoder
from rpage.domain.common.time import utcnow
from rpage.domain.outputs import OutputService
from rpage.infrastructure.database import session_scope

from tests.conftest import FAILING_SCRIPT, SIMPLE_SCRIPT

pytestmark = pytest.mark.asyncio


async def _create(async_client: AsyncClient, automation_id: str = "t1", script: str = SIMPLE_SCRIPT) -> dict:
    response = await async_client.post(
        "/api/automations",
        json={"id": automation_id, "name": "Test automation", "description": "demo", "script": script},
    )
    assert response.status_code == 200
    return response.json()["data"]


async def test_health(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["activeRuns"] == []


async def test_automation_crud(async_client: AsyncClient) -> None:
    created = await _create(async_client)
    assert created["status"] == "idle"
    assert "createdAt" in created

    listed = await async_client.get("/api/automations")
    assert [item["id"] for item in listed.json()["data"]] == ["t1"]

    updated = await async_client.put("/api/automations/t1", json={"name": "Renamed"})
    assert updated.json()["data"]["name"] == "Renamed"
    assert updated.json()["data"]["script"] == SIMPLE_SCRIPT

    duplicate = await async_client.post("/api/automations", json={"id": "t1", "name": "x", "script": "y"})
    assert duplicate.status_code == 409

    deleted = await async_client.delete("/api/automations/t1")
    assert deleted.json() == {"success": True, "data": {"id": "t1"}}
    assert (await async_client.get("/api/automations/t1")).status_code == 404


async def test_create_requires_name_and_script(async_client: AsyncClient) -> None:
    response = await async_client.post("/api/automations", json={"name": "only a name"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Name and script are required"


async def test_run_rejects_empty_script(async_client: AsyncClient) -> None:
    await _create(async_client)

    response = await async_client.post("/api/run-automation", json={"id": "t1", "name": "Test", "script": "  "})

    assert response.status_code == 400
    assert response.json()["detail"] == "Script is required"


async def test_run_rejects_unknown_automation(async_client: AsyncClient) -> None:
    response = await async_client.post("/api/run-automation", json={"id": "nope", "name": "x", "script": SIMPLE_SCRIPT})

    assert response.status_code == 404


async def test_run_streams_server_sent_events(async_client: AsyncClient) -> None:
    await _create(async_client)

    response = await async_client.post(
        "/api/run-automation",
        json={"id": "t1", "name": "Test automation", "script": SIMPLE_SCRIPT},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    events = EventStreamDecoder().feed(response.content)
    assert [event["type"] for event in events] == ["status", "log", "complete"]
    assert events[0] == {"type": "status", "status": "running", "message": "Starting automation..."}
    assert events[1] == {"type": "log", "message": "hi"}
    assert events[2]["success"] is True
    assert events[2]["result"] == {"ok": True}
    assert "executionTime" in events[2]

    detail = await async_client.get("/api/automations/t1")
    assert detail.json()["data"]["status"] == "completed"
    logs = await async_client.get("/api/logs")
    assert [entry["status"] for entry in logs.json()["data"]] == ["completed"]
    assert logs.json()["data"][0]["automationName"] == "Test automation"


async def test_run_without_streaming_returns_json(async_client: AsyncClient) -> None:
    await _create(async_client, script=FAILING_SCRIPT)

    response = await async_client.post(
        "/api/run-automation?stream=false",
        json={"id": "t1", "name": "Test automation", "script": FAILING_SCRIPT},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "boom"
    assert body["output"] == "Error: boom"


async def test_outputs_listing_and_delete(async_client: AsyncClient) -> None:
    await _create(async_client)
    now = utcnow()
    async with session_scope() as session:
        service = OutputService.with_session(session)
        for index in range(3):
            await service.save_output("t1", {"n": index}, f"shot {index}", "screenshot", timestamp=now - timedelta(minutes=index))

    listing = await async_client.get("/api/outputs", params={"page": 1, "limit": 2})
    body = listing.json()
    assert body["success"] is True
    assert [file["name"] for file in body["files"]] == ["shot 0", "shot 1"]
    assert body["count"] == 2
    assert body["total"] == 3
    assert body["hasMore"] is True
    assert body["files"][0]["automationId"] == "t1"

    rest = await async_client.get("/api/outputs-direct", params={"page": 1, "limit": 30, "skip": 2})
    assert [file["name"] for file in rest.json()] == ["shot 2"]

    output_id = body["files"][0]["id"]
    detail = await async_client.get(f"/api/outputs/{output_id}")
    assert detail.json()["data"]["data"] == '{"n": 0}'

    deleted = await async_client.delete(f"/api/outputs/{output_id}")
    assert deleted.json() == {"success": True, "data": {"id": output_id}}
    assert (await async_client.delete(f"/api/outputs/{output_id}")).status_code == 404
    assert (await async_client.get(f"/api/outputs/{output_id}")).status_code == 404


async def test_outputs_filtered_by_type(async_client: AsyncClient) -> None:
    await _create(async_client)
    now = utcnow()
    async with session_scope() as session:
        service = OutputService.with_session(session)
        await service.save_output("t1", {}, "older shot", "screenshot", timestamp=now - timedelta(minutes=5))
        await service.save_output("t1", "plain", "notes", "text", timestamp=now)
        await service.save_output("t1", {}, "newer shot", "screenshot", timestamp=now)

    response = await async_client.get("/api/outputs/type/screenshot")

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["count"] == 2
    assert [file["name"] for file in body["files"]] == ["newer shot", "older shot"]
    assert (await async_client.get("/api/outputs/type/video")).json() == {"success": True, "files": [], "count": 0}


async def test_cleanup_endpoint_uses_stored_retention(async_client: AsyncClient) -> None:
    await _create(async_client)
    now = utcnow()
    async with session_scope() as session:
        service = OutputService.with_session(session)
        await service.save_output("t1", "text", "notes", "text", timestamp=now)
        await service.save_output("t1", {}, "old", "screenshot", timestamp=now - timedelta(days=3))
        await service.save_output("t1", {}, "new", "screenshot", timestamp=now)

    await async_client.post("/api/settings", json={"keepOutputDays": 2})
    response = await async_client.post("/api/maintenance/cleanup")

    body = response.json()
    assert body["message"] == "Cleaned up 2 old outputs"
    assert body["data"] == {"deleted": 2, "oldOutputsRemoved": 1, "nonScreenshotsRemoved": 1}
    remaining = await async_client.get("/api/outputs")
    assert [file["name"] for file in remaining.json()["files"]] == ["new"]


async def test_settings_round_trip(async_client: AsyncClient) -> None:
    defaults = await async_client.get("/api/settings")
    assert defaults.json()["data"] == {"notificationsEnabled": True, "darkTheme": True, "keepOutputDays": 7}

    saved = await async_client.post("/api/settings", json={"darkTheme": False, "keepOutputDays": 14, "label": "lab"})

    assert saved.json()["data"]["darkTheme"] is False
    assert saved.json()["data"]["keepOutputDays"] == 14
    assert saved.json()["data"]["label"] == "lab"


async def test_logs_can_be_cleared(async_client: AsyncClient) -> None:
    await _create(async_client)
    await async_client.post("/api/run-automation?stream=false", json={"id": "t1", "name": "t", "script": SIMPLE_SCRIPT})

    cleared = await async_client.delete("/api/logs")

    assert cleared.json()["message"].startswith("All logs cleared")
    assert (await async_client.get("/api/logs")).json()["data"] == []
