"""Simple dependency container for wiring core services."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from rpage.core.config import Settings, get_settings
from rpage.infrastructure.database.session import get_engine
from rpage.runs.coordinator import RunCoordinator


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    coordinator: RunCoordinator

    @classmethod
    def from_settings(cls, settings: Settings) -> "ApplicationContainer":
        return cls(settings=settings, coordinator=RunCoordinator.from_settings(settings))

    def init_infrastructure(self) -> None:
        """Ensure infrastructure singletons (database engine, outputs directory) exist."""
        get_engine()
        self.settings.outputs_dir.mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_container() -> ApplicationContainer:
    container = ApplicationContainer.from_settings(get_settings())
    container.init_infrastructure()
    return container


__all__ = ["ApplicationContainer", "get_container"]
