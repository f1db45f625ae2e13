import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rpage import __version__
from rpage.api import create_api_router
from rpage.core.config import get_settings
from rpage.core.container import ApplicationContainer
from rpage.core.logging import configure_logging
from rpage.domain.automations import AutomationService
from rpage.domain.settings import SettingService
from rpage.infrastructure.database import dispose_engine, init_db, session_scope
from rpage.services import sweep_on_startup

logger = logging.getLogger(__name__)


async def prepare_database(container: ApplicationContainer) -> None:
    """Create tables, insert default settings and repair statuses left by a previous process."""
    settings = container.settings
    await init_db()
    async with session_scope() as session:
        inserted = await SettingService.with_session(session).ensure_defaults()
        if inserted:
            logger.info("Inserted %s default settings", inserted)
        automations = AutomationService.with_session(session)
        reset = await automations.reset_stale_runs()
        if reset:
            logger.info("Reset %s automations left in a non-idle state", reset)
        if settings.runs.seed_sample_automation:
            await automations.seed_sample_if_empty()


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: ApplicationContainer = app.state.container
    container.init_infrastructure()
    await prepare_database(container)
    if container.settings.retention.sweep_on_startup:
        await sweep_on_startup(container.settings)
    yield
    await container.coordinator.shutdown(container.settings.runs.shutdown_grace_period)
    await dispose_engine()


def create_app(container: Optional[ApplicationContainer] = None, *, configure_logs: bool = True) -> FastAPI:
    container = container or ApplicationContainer.from_settings(get_settings())
    settings = container.settings
    if configure_logs:
        configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.project_name,
        description="Headless browser automation runner",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_api_router(settings.api_prefix))

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "version": __version__, "activeRuns": container.coordinator.active_runs()}

    return app


app = create_app()
