from fastapi import APIRouter

from rpage.api.routers import automations, logs, maintenance, outputs, runs, settings


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(runs.router, tags=["runs"])
    router.include_router(outputs.router, tags=["outputs"])
    router.include_router(maintenance.router, tags=["maintenance"])
    router.include_router(automations.router, prefix="/automations", tags=["automations"])
    router.include_router(logs.router, tags=["logs"])
    router.include_router(settings.router, prefix="/settings", tags=["settings"])
    return router


__all__ = [
    "create_api_router",
]
