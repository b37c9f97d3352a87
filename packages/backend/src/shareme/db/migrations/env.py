"""Alembic environment for the shareme schema.

Learn: The database URL always comes from SHAREME_DATABASE_URL (via
settings), never from alembic.ini, so `alembic upgrade head` migrates the
same database the app talks to. Offline mode renders SQL for review;
online mode runs through the async engine. SQLite needs batch mode for
ALTER TABLE, so it is switched on by dialect.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from shareme.config import settings
from shareme.db.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DATABASE_URL = settings.database_url


def _migrate(**options) -> None:
    context.configure(target_metadata=Base.metadata, compare_type=True, **options)
    with context.begin_transaction():
        context.run_migrations()


def _migrate_on(connection: Connection) -> None:
    _migrate(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
    )


async def _migrate_online() -> None:
    engine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate_on)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _migrate(url=DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(_migrate_online())
