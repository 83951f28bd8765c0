import asyncio
import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

# Running `alembic` from the repo root does not put the project on sys.path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import app.models  # noqa: E402,F401
from app.core.settings import get_settings  # noqa: E402
from app.database import Base  # noqa: E402

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

database_settings = get_settings().database


def _migration_url() -> str:
    """`-x dburl=...` wins, then alembic.ini, then the service's own database URL."""
    override = context.get_x_argument(as_dictionary=True).get("dburl")
    return override or config.get_main_option("sqlalchemy.url") or database_settings.database_url


def _configure(**kwargs) -> None:
    url = _migration_url()
    if "connection" not in kwargs:
        kwargs["url"] = url
    context.configure(
        target_metadata=Base.metadata,
        # SQLite cannot ALTER most constraints in place
        render_as_batch=url.startswith("sqlite"),
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    url = _migration_url()
    connect_args = {}
    if url.startswith("postgresql+asyncpg") and database_settings.DB_SSL:
        connect_args["ssl"] = True

    engine = create_async_engine(url, poolclass=pool.NullPool, connect_args=connect_args)
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
