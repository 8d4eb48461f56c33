"""Alembic environment for the calendar sync schema.

Migrations are raw SQL via op.execute(); there is no SQLAlchemy metadata to
autogenerate from.
"""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

from eventsync.db.connection import get_sqlalchemy_database_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def get_url() -> str:
    """Resolve the database URL from the alembic config or DATABASE_URL."""
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    return get_sqlalchemy_database_url()


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL to stdout."""
    context.configure(
        url=get_url(),
        target_metadata=None,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live database connection."""
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=None)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
