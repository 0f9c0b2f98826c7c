"""
Alembic environment for the Ultramagnus schema.

Target database, in order of precedence:
- `alembic -x url=...`
- DATABASE_URL (see ultramagnus.db.session)

SQLite cannot ALTER most constraints in place, so batch mode is switched on
for it. Only tables declared on our metadata are compared during autogenerate.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from ultramagnus.db.models import Base
from ultramagnus.db.session import DATABASE_URL

alembic_cfg = context.config
if alembic_cfg.config_file_name is not None:
    fileConfig(alembic_cfg.config_file_name)

target_url = context.get_x_argument(as_dictionary=True).get("url") or DATABASE_URL
alembic_cfg.set_main_option("sqlalchemy.url", target_url)


def owned_tables_only(obj, name, type_, reflected, compare_to) -> bool:
    # Other services may share the database file
    if type_ == "table" and reflected and compare_to is None:
        return name in Base.metadata.tables
    return True


def migration_options() -> dict:
    return {
        "target_metadata": Base.metadata,
        "compare_type": True,
        "include_object": owned_tables_only,
        "render_as_batch": target_url.startswith("sqlite"),
    }


def emit_sql() -> None:
    """Offline mode: write the migration SQL to stdout."""
    context.configure(
        url=target_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **migration_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection) -> None:
    context.configure(connection=connection, **migration_options())
    with context.begin_transaction():
        context.run_migrations()


async def apply_online() -> None:
    engine = create_async_engine(target_url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    emit_sql()
else:
    asyncio.run(apply_online())
