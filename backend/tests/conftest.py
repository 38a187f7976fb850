"""Test configuration and fixtures.

Tests run against a file-based SQLite database (./test.db) created from the
SQLAlchemy metadata once per session. The sync bootstrap and the async
sessions used by the app share that file.

Environment Variables:
    TESTING=true    -> sqlite test database, test-oriented code paths
    FAST_TESTS=1    -> lifespan skips OpenTelemetry setup and the DB connectivity check
"""

import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Flag test mode before the database module builds its engines
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("FAST_TESTS", "1")

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from statement_desk.config.database import (  # noqa: E402
    AsyncSessionLocal,
    SessionLocal,
    create_database_tables,
    drop_database_tables,
)
from statement_desk.models.database import Base  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_db():
    """Fresh schema for the whole session."""
    drop_database_tables()
    create_database_tables()
    yield


@pytest.fixture(autouse=True)
def _clean_tables():
    """Delete every row after each test so creation order never leaks between tests."""
    yield
    with SessionLocal() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()


@pytest_asyncio.fixture
async def async_client():
    from statement_desk.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def db_session():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def sample_statement_payload():
    """Create payload as the dashboard form sends it (camelCase, string amount)."""
    return {
        "sender": {"senderFullname": "Иванов Иван Иванович", "senderPassport": "4510 123456"},
        "receiver": {
            "receiverFullname": "John Smith",
            "receiverAccountNumber": "GB29NWBK60161331926819",
            "receiverSwift": "nwbkgb2l",
        },
        "amount": "1500.00",
        "currency": "usd",
    }


@pytest.fixture
def service_payload():
    """Create payload in the snake_case form the service layer consumes."""
    return {
        "sender": {"sender_fullname": "Петров Пётр", "sender_passport": "4001 654321"},
        "receiver": {
            "receiver_fullname": "Anna Müller",
            "receiver_account_number": "DE89370400440532013000",
            "receiver_swift": "COBADEFFXXX",
        },
        "amount": "2500.50",
        "currency": "EUR",
    }
