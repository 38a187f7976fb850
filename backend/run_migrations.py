"""Utility script to run Alembic migrations programmatically before app start (optional).

Usage:
    python run_migrations.py

This can be invoked in container entrypoint before launching uvicorn.
"""
from alembic.config import Config
from alembic import command
from sqlalchemy import create_engine, inspect
import logging
import os

BASE_DIR = os.path.dirname(__file__)
ALEMBIC_INI = os.path.join(BASE_DIR, 'alembic.ini')
BASELINE_REVISION = '20261019_0001'
SENTINEL_TABLES = {'senders', 'receivers', 'statements'}

logger = logging.getLogger("migrations")


def _sync_url(url: str) -> str:
    if url.startswith('postgresql+asyncpg://'):
        return url.replace('postgresql+asyncpg://', 'postgresql+psycopg://', 1)
    if url.startswith('sqlite+aiosqlite://'):
        return url.replace('sqlite+aiosqlite://', 'sqlite://', 1)
    return url


def run():
    cfg = Config(ALEMBIC_INI)
    override = os.getenv('DB_URL') or os.getenv('DATABASE_URL')
    if override:
        cfg.set_main_option('sqlalchemy.url', override)
        # Stamp the baseline when tables were created before migrations existed
        engine = create_engine(_sync_url(override))
        try:
            existing_tables = set(inspect(engine).get_table_names())
        finally:
            engine.dispose()
        if 'alembic_version' not in existing_tables and existing_tables & SENTINEL_TABLES:
            logger.warning(
                "Existing tables detected without alembic_version. Stamping baseline %s.",
                BASELINE_REVISION)
            command.stamp(cfg, BASELINE_REVISION)

    command.upgrade(cfg, 'head')


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    run()
