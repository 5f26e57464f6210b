"""Alembic environment for the back-office schema."""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

import backoffice.db.models  # noqa: F401  registers every table on Base.metadata
from backoffice.core.config import settings
from backoffice.db.base import Base

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        **kwargs,
    )


def migrate_offline() -> None:
    """Emit SQL for the configured DATABASE_URL without connecting."""
    _configure(url=settings.DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def migrate_online() -> None:
    # DATABASE_URL is read directly; alembic.ini would mangle "%" in passwords
    engine = create_engine(settings.DATABASE_URL, poolclass=pool.NullPool)
    with engine.connect() as connection:
        # SQLite cannot ALTER most constraints in place
        _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    migrate_offline()
else:
    migrate_online()
