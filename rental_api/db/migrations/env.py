"""Alembic environment for the rental catalog schema (async engine online, URL only offline)."""

from __future__ import annotations

import asyncio

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from rental_api.db import models  # noqa: F401
from rental_api.db.base import Base
from rental_api.db.config import get_settings

settings = get_settings()
COMPARE_OPTIONS = {"target_metadata": Base.metadata, "compare_type": True, "compare_server_default": True}


def run_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    context.configure(
        url=settings.sync_database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    # SQLite cannot ALTER most constraints in place
    context.configure(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
        **COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_online() -> None:
    """Apply migrations over a short-lived async engine."""
    engine = create_async_engine(settings.async_database_url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    asyncio.run(run_online())
