from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

# backend name -> async driver used by the AsyncEngine
ASYNC_DRIVERS = {"postgresql": "asyncpg", "sqlite": "aiosqlite"}


class Settings(BaseSettings):
    """
    Database connection settings.

    DATABASE_URL wins when set (any SQLAlchemy URL, e.g. ``sqlite+aiosqlite:///:memory:``).
    Otherwise POSTGRES_URL, otherwise a PostgreSQL URL assembled from
    POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB, POSTGRES_HOST and POSTGRES_PORT.
    """

    DATABASE_URL: Optional[str] = Field(default=None, description="Full SQLAlchemy database URL")
    POSTGRES_URL: Optional[str] = Field(default=None, description="Full PostgreSQL connection URL")
    POSTGRES_USER: Optional[str] = Field(default=None)
    POSTGRES_PASSWORD: Optional[str] = Field(default=None)
    POSTGRES_DB: Optional[str] = Field(default=None)
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)

    SQL_ECHO: bool = Field(default=False, description="Log emitted SQL")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def _url(self) -> URL:
        raw = self.DATABASE_URL or self.POSTGRES_URL
        if raw:
            return make_url(raw)
        if not (self.POSTGRES_USER and self.POSTGRES_PASSWORD and self.POSTGRES_DB):
            raise ValueError(
                "Database configuration missing. Set DATABASE_URL, POSTGRES_URL or "
                "POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB."
            )
        return URL.create(
            "postgresql",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            database=self.POSTGRES_DB,
        )

    @property
    def database_url(self) -> str:
        """The configured URL as given."""
        return self._url().render_as_string(hide_password=False)

    @property
    def async_database_url(self) -> str:
        """URL with the backend's async driver (asyncpg or aiosqlite) for AsyncEngine."""
        url = self._url()
        driver = ASYNC_DRIVERS.get(url.get_backend_name())
        if driver:
            url = url.set(drivername=f"{url.get_backend_name()}+{driver}")
        return url.render_as_string(hide_password=False)

    @property
    def sync_database_url(self) -> str:
        """URL without a driver suffix, used by Alembic offline mode."""
        url = self._url()
        return url.set(drivername=url.get_backend_name()).render_as_string(hide_password=False)


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Read database settings from the environment."""
    return Settings()
