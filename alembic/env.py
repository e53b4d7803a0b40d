"""Alembic environment for Clinidraft.

Runs migrations through SQLAlchemy's async engine with the database URL
taken from ``load_config()`` (TOML plus ``CLINIDRAFT_DATABASE__URL``).

Only ``ai_drafts`` is owned by this package. The intake tables are mapped
for reading but created and migrated by the patient-facing application,
so autogenerate is restricted to owned tables.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from clinidraft.config import load_config
from clinidraft.database.models.base import Base

OWNED_TABLES = frozenset({"ai_drafts"})

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

clinidraft_config = load_config()
config.set_main_option("sqlalchemy.url", clinidraft_config.database.url)

target_metadata = Base.metadata


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Limit autogenerate to tables this package owns."""
    if type_ == "table":
        return name in OWNED_TABLES
    return True


def run_migrations_offline() -> None:
    """Emit migration SQL without connecting to the database."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        include_object=include_object,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """Execute migrations against the provided connection.

    Args:
        connection: Active database connection to run migrations on.
    """
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Connect with an async engine and run pending migrations."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
