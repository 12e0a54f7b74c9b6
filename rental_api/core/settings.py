from __future__ import annotations

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Service-level settings: API metadata, CORS, startup tasks, feature flags and paging.

    Database connectivity lives in rental_api.db.config.Settings.
    """

    APP_NAME: str = Field(default="Rental API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Rental catalog API. Manages rentals with their variants, options, prices, "
            "tags, types, collections and sales channel scoping."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level name")

    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)

    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="Apply Alembic migrations (upgrade head) when the app starts.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="Seed shipping profiles, a region and a sales channel after migrations.",
    )

    FEATURE_SALES_CHANNELS: bool = Field(
        default=False,
        description="Enables sales channel assignment and filtering on rentals.",
    )

    ADMIN_LIST_LIMIT: int = Field(default=50, ge=1, description="Default page size for admin lists")
    STORE_LIST_LIMIT: int = Field(default=100, ge=1, description="Default page size for store lists")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _default_origins(cls, v):
        """An empty origin list means any origin."""
        if not v:
            return ["*"]
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()] or ["*"]
        return v


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """Build AppSettings from the current environment (not cached, so tests can patch env)."""
    return AppSettings()
