"""Alembic environment for the statement schema.

Only the model metadata is imported; the runtime database module (engines,
sessions, event hooks) stays out of migrations. URL precedence:

1. DB_URL
2. DATABASE_URL
3. sqlalchemy.url from alembic.ini
4. Local Postgres built from DB_* variables

Async driver URLs are rewritten to their sync drivers (asyncpg -> psycopg,
aiosqlite -> pysqlite) because Alembic runs synchronously.
"""
import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

# env.py lives in backend/alembic; the package root is backend/
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from statement_desk.models.database import Base  # noqa: E402

SYNC_DRIVERS = {
    'postgresql+asyncpg://': 'postgresql+psycopg://',
    'sqlite+aiosqlite://': 'sqlite://',
}

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def resolve_url() -> str:
    url = (os.getenv('DB_URL') or os.getenv('DATABASE_URL')
           or config.get_main_option('sqlalchemy.url'))
    if not url:
        url = 'postgresql+psycopg://{}:{}@{}:{}/{}'.format(
            os.getenv('DB_USER', 'postgres'),
            os.getenv('DB_PASSWORD', 'postgres'),
            os.getenv('DB_HOST', 'localhost'),
            os.getenv('DB_PORT', '5432'),
            os.getenv('DB_NAME', 'statements'),
        )
    for async_prefix, sync_prefix in SYNC_DRIVERS.items():
        if url.startswith(async_prefix):
            return sync_prefix + url[len(async_prefix):]
    return url


config.set_main_option('sqlalchemy.url', resolve_url())


def run_migrations_offline():
    """Emit SQL for the configured URL without connecting."""
    context.configure(
        url=config.get_main_option('sqlalchemy.url'),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix='sqlalchemy.',
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            # SQLite cannot ALTER constraints in place
            render_as_batch=connection.dialect.name == 'sqlite',
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
