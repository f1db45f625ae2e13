"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from rpage.core.config import Settings
from rpage.core.container import ApplicationContainer, get_container
from rpage.infrastructure.database.session import get_session
from rpage.runs.coordinator import RunCoordinator


async def get_db_session() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def get_app_container(request: Request) -> ApplicationContainer:
    container = getattr(request.app.state, "container", None)
    return container if container is not None else get_container()


def get_coordinator(request: Request) -> RunCoordinator:
    return get_app_container(request).coordinator


def get_app_settings(request: Request) -> Settings:
    return get_app_container(request).settings
