"""
Configuration settings for the fiscalization data-access core.

Uses Pydantic Settings to load environment variables for the upstream API,
logging, sweep limits, search behavior and mutation policy.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Upstream API
    api_base_url: str = Field("https://backendfiscamoto.onrender.com/api", alias="API_BASE_URL")
    api_token: Optional[str] = Field(None, alias="API_TOKEN")
    api_timeout_seconds: float = Field(20.0, alias="API_TIMEOUT_SECONDS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Pagination and sweeps
    page_size: int = Field(6, alias="PAGE_SIZE")
    sweep_max_pages: int = Field(150, alias="SWEEP_MAX_PAGES")
    sweep_strict: bool = Field(False, alias="SWEEP_STRICT")

    # Search
    search_min_length: int = Field(2, alias="SEARCH_MIN_LENGTH")
    search_debounce_ms: int = Field(450, alias="SEARCH_DEBOUNCE_MS")

    # Stats and caching
    stats_window_days: int = Field(7, alias="STATS_WINDOW_DAYS")
    cache_ttl_seconds: float = Field(300.0, alias="CACHE_TTL_SECONDS")

    # Mutations
    allow_simulated_mutations: bool = Field(False, alias="ALLOW_SIMULATED_MUTATIONS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def is_production(self) -> bool:
        return self.app_env.strip().lower() in {"production", "prod"}

    @property
    def simulated_mutations_enabled(self) -> bool:
        """
        Whether the terminal simulated strategy may run.

        Never true in production, whatever ALLOW_SIMULATED_MUTATIONS says.
        """
        return self.allow_simulated_mutations and not self.is_production

    @property
    def search_debounce_seconds(self) -> float:
        return self.search_debounce_ms / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
