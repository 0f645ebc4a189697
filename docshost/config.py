"""Centralized settings: all env vars and tunables live here."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load .env before anything reads os.getenv
load_dotenv(Path(__file__).resolve().parent / ".env")


class Settings(BaseSettings):
    """Application settings. Values come from environment variables, then defaults."""

    # ── Database ──
    # Empty means "no database": the in-memory release store is used instead.
    database_url: str = Field(default="", alias="DATABASE_URL")

    # ── Registry API ──
    registry_api_base: str = Field(default="https://crates.io", alias="REGISTRY_API_BASE")
    registry_timeout: float = 10.0

    # ── Storage ──
    storage_root: Path = Field(
        default=Path(__file__).resolve().parent / "static",
        alias="STORAGE_ROOT",
    )

    # ── Server ──
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )
    rate_limit_default: str = "120/minute"

    # ── Caching ──
    # Applied to responses using the "stale in browser" policies.
    cache_control_max_age: int | None = None
    cache_control_stale_while_revalidate: int | None = None

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}


@lru_cache
def get_settings() -> Settings:
    """Return cached singleton settings instance."""
    return Settings()
