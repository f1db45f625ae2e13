"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3001
    reload: bool = False


class DatabaseSettings(BaseModel):
    # Derived from ``data_dir`` when unset.
    url: Optional[str] = None
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class RunSettings(BaseModel):
    idle_reset_delay: float = 3.0
    screenshot_log_hint: bool = True
    seed_sample_automation: bool = True
    shutdown_grace_period: float = 10.0


class SandboxSettings(BaseModel):
    python_executable: Optional[str] = None
    max_message_bytes: int = 32 * 1024 * 1024
    stderr_tail_chars: int = 2000


class RetentionSettings(BaseModel):
    default_keep_days: int = 7
    sweep_on_startup: bool = True


class ClientSettings(BaseModel):
    base_url: str = "http://localhost:3001/api"
    request_timeout: float = 10.0
    run_timeout: float = 120.0
    cache_ttl: float = 30.0


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    project_name: str = "Rpage"
    api_prefix: str = "/api"

    data_dir: Path = Field(
        default=Path("data"),
        validation_alias=AliasChoices("RPAGE_DATA_DIR", "data_dir"),
    )

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    runs: RunSettings = RunSettings()
    sandbox: SandboxSettings = SandboxSettings()
    retention: RetentionSettings = RetentionSettings()
    client: ClientSettings = ClientSettings()

    @property
    def database_url(self) -> str:
        if self.database.url:
            return self.database.url
        return f"sqlite+aiosqlite:///{(self.data_dir / 'rpage.db').resolve()}"

    @property
    def outputs_dir(self) -> Path:
        return (self.data_dir / "outputs").resolve()

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port


@lru_cache()
def get_settings() -> Settings:
    return Settings()
