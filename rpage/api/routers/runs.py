"""Run submission endpoint streaming server-sent events."""
from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Union

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sse_starlette.sse import EventSourceResponse

from rpage.api.deps import get_coordinator
from rpage.domain.automations import AutomationNotFoundError
from rpage.runs import EmptyScriptError, RunAlreadyActiveError, RunCoordinator, RunHandle
from rpage.schemas import RunRequest, RunResultResponse

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}
# Frames end with a blank "\n\n", which the browser client splits on.
SSE_SEPARATOR = "\n"


async def _event_stream(handle: RunHandle, request: Request) -> AsyncIterator[dict[str, str]]:
    # Leaving early only stops delivery; the run task keeps going and persists.
    async for message in handle.messages():
        if await request.is_disconnected():
            return
        yield message


@router.post("/run-automation", response_model=None)
async def run_automation(
    payload: RunRequest,
    request: Request,
    stream: bool = Query(True, description="Set to false to wait for the result as one JSON object"),
    coordinator: RunCoordinator = Depends(get_coordinator),
) -> Union[EventSourceResponse, RunResultResponse]:
    try:
        handle = await coordinator.submit_run(payload.id, payload.name, payload.script)
    except EmptyScriptError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except AutomationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RunAlreadyActiveError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    if not stream:
        outcome = await handle.wait()
        return RunResultResponse(
            success=outcome.success,
            output=outcome.output,
            data=outcome.result,
            error=outcome.error,
        )
    return EventSourceResponse(_event_stream(handle, request), headers=SSE_HEADERS, sep=SSE_SEPARATOR)


@router.get("/runs/active")
async def list_active_runs(coordinator: RunCoordinator = Depends(get_coordinator)) -> dict:
    return {"success": True, "data": coordinator.active_runs()}
