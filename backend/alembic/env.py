"""Alembic environment for the taskboard schema."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from taskboard.config import get_settings
from taskboard.db import models  # noqa: F401 - registers the tables on Base.metadata
from taskboard.db.base import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def database_url() -> str:
    """
    `alembic -x url=...` targets another database; otherwise the sync
    (psycopg2) form of the configured URL is used.
    """
    return context.get_x_argument(as_dictionary=True).get("url") or get_settings().database_url_sync


def configure(**kwargs) -> None:
    url = kwargs.get("url") or str(kwargs["connection"].engine.url)
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite can only ALTER through table copies
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting."""
    configure(url=database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
