from datetime import datetime, UTC

import pytest

from statement_desk.models.records import ReceiverInfo, SenderInfo, StatementRecord
from statement_desk.services.analytics_service import (
    amount_histogram,
    build_analytics,
    currency_distribution,
    daily_series,
    status_distribution,
    status_groups,
    summarize,
)

pytestmark = [pytest.mark.unit]

_SENDER = SenderInfo(id=1, sender_fullname="Иванов И.И.", sender_passport="4510 123456")
_RECEIVER = ReceiverInfo(id=1, receiver_fullname="John Smith",
                         receiver_account_number="GB29NWBK60161331926819", receiver_swift="NWBKGB2L")


def record(id, amount, status="PENDING", currency="USD", created_at=None):  # noqa: A002
    created_at = created_at or datetime(2026, 10, 18, 10, 0, tzinfo=UTC)
    return StatementRecord(id=id, sender=_SENDER, receiver=_RECEIVER, amount=amount,
                           currency=currency, status=status,
                           created_at=created_at, updated_at=created_at)


@pytest.fixture
def records():
    return [
        record(1, "100.00", "COMPLETED"),
        record(2, "300.00", "PENDING", "EUR"),
        record(3, "600.00", "REJECTED"),
        record(4, "abc", "APPROVED"),
    ]


def test_summary_totals(records):
    summary = summarize(records)
    assert summary == {
        "total_count": 4,
        "total_amount": "1000.00",
        "completed_count": 1,
        "completed_amount": "100.00",
        "average_amount": "250.00",
        "completion_rate": 25.0,
    }


def test_summary_empty():
    summary = summarize([])
    assert summary["total_count"] == 0
    assert summary["average_amount"] == "0.00"
    assert summary["completion_rate"] == 0.0


def test_status_groups(records):
    assert status_groups(records) == {"pending": 1, "approved": 2, "rejected": 1}
    assert status_groups([record(5, "1", "CANCELLED"), record(6, "1", "FAILED")])["rejected"] == 2


def test_status_distribution_uses_dashboard_labels(records):
    by_status = {row["status"]: row for row in status_distribution(records)}
    assert by_status["COMPLETED"]["label"] == "Завершено"
    assert by_status["PENDING"]["label"] == "В обработке"
    assert sum(row["count"] for row in by_status.values()) == 4


def test_currency_distribution_most_common_first(records):
    rows = currency_distribution(records)
    assert rows[0] == {"currency": "USD", "count": 3, "total": "700.00"}
    assert rows[1] == {"currency": "EUR", "count": 1, "total": "300.00"}


def test_histogram_counts_each_amount_once(records):
    histogram = amount_histogram(records)
    assert [b["label"] for b in histogram] == ["0-20%", "20-40%", "40-60%", "60-80%", "80-100%"]
    assert [b["count"] for b in histogram] == [2, 0, 1, 0, 1]
    assert histogram[0]["min"] == "0.00"
    assert histogram[0]["max"] == "120.00"
    assert histogram[-1]["max"] == "600.00"
    assert sum(b["count"] for b in histogram) == len(records)


def test_histogram_equal_amounts_fall_in_first_bucket():
    histogram = amount_histogram([record(i, "50") for i in range(3)])
    assert [b["count"] for b in histogram] == [3, 0, 0, 0, 0]


def test_histogram_empty():
    assert amount_histogram([]) == []


def test_daily_series_chronological_in_document_timezone():
    series = daily_series([
        record(1, "10", created_at=datetime(2026, 10, 1, 8, 0, tzinfo=UTC)),
        # 22:00 UTC is already the next day at UTC+3
        record(2, "20", created_at=datetime(2026, 9, 30, 22, 0, tzinfo=UTC)),
        record(3, "5.5", created_at=datetime(2026, 9, 29, 12, 0, tzinfo=UTC)),
    ])
    assert series == [
        {"date": "29.09.2026", "count": 1, "amount": "5.50"},
        {"date": "01.10.2026", "count": 2, "amount": "30.00"},
    ]


def test_build_analytics_sections(records):
    data = build_analytics(records)
    assert set(data) == {"summary", "status_groups", "status_distribution",
                         "currency_distribution", "amount_histogram", "daily_series"}


def test_amounts_beyond_default_precision():
    data = build_analytics([record(1, "1e30", "COMPLETED"), record(2, "sNaN")])
    huge = "1" + "0" * 30 + ".00"
    assert data["summary"]["total_amount"] == huge
    assert data["summary"]["completed_amount"] == huge
    assert data["currency_distribution"] == [{"currency": "USD", "count": 2, "total": huge}]
    assert data["amount_histogram"][-1]["max"] == huge
