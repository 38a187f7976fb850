import pytest

from statement_desk.config.database import db_config, get_database_info, to_async_url

pytestmark = [pytest.mark.unit]


@pytest.mark.parametrize("sync_url, async_url", [
    ("postgresql+psycopg://u:p@db:5432/statements", "postgresql+asyncpg://u:p@db:5432/statements"),
    ("postgresql://u:p@db/statements", "postgresql+asyncpg://u:p@db/statements"),
    ("sqlite:///./test.db", "sqlite+aiosqlite:///./test.db"),
    ("postgresql+asyncpg://u:p@db/statements", "postgresql+asyncpg://u:p@db/statements"),
])
def test_to_async_url(sync_url, async_url):
    assert to_async_url(sync_url) == async_url


def test_testing_mode_uses_shared_sqlite_file():
    assert db_config.database_url == "sqlite:///./test.db"
    assert db_config.async_database_url == "sqlite+aiosqlite:///./test.db"
    assert get_database_info()["backend"] == "sqlite"
