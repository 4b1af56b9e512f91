"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DefaultColumn(BaseModel):
    """Column seeded onto a newly created project board."""

    key: str
    name: str
    color: str


def _default_columns() -> list[DefaultColumn]:
    return [
        DefaultColumn(key="todo", name="To Do", color="#6b7280"),
        DefaultColumn(key="inprogress", name="In Progress", color="#2563eb"),
        DefaultColumn(key="done", name="Done", color="#10b981"),
    ]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Taskboard"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_prefix: str = "/api/v1"
    allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # Storage
    storage_backend: Literal["memory", "sql"] = "sql"
    database_url: str = "sqlite+aiosqlite:///./taskboard.db"
    database_echo: bool = False
    memory_latency_ms: int = 0  # simulated round-trip for the in-memory stores

    # Board
    done_status: str = "done"
    default_columns: list[DefaultColumn] = Field(default_factory=_default_columns)

    # Dashboard
    recent_activity_per_project: int = 3
    recent_activity_limit: int = 8
    top_projects_limit: int = 5


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
