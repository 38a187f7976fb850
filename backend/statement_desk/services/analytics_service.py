"""Dashboard analytics computed server-side from statement snapshots.

Pure functions over ``StatementRecord`` sequences; no database access.
Money values are returned as two-decimal strings so JSON never carries
binary floats. Amounts that do not parse as finite numbers count as zero.
"""
from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Sequence

from statement_desk.models.records import StatementRecord
from statement_desk.utils.formatting import (
    ANALYTICS_STATUS_LABELS,
    format_date,
    parse_amount,
    round_cents,
    status_text,
)

ZERO = Decimal("0")

APPROVED_GROUP = frozenset({"APPROVED", "COMPLETED"})
REJECTED_GROUP = frozenset({"REJECTED", "FAILED", "CANCELLED"})


def _amount(record: StatementRecord) -> Decimal:
    value = parse_amount(record.amount)
    return value if value.is_finite() else ZERO


def _money(value: Decimal) -> str:
    return format(round_cents(value), "f")


def _status(record: StatementRecord) -> str:
    return str(record.status).upper()


def summarize(records: Sequence[StatementRecord]) -> Dict[str, Any]:
    total = sum((_amount(r) for r in records), ZERO)
    completed = [r for r in records if _status(r) == "COMPLETED"]
    completed_amount = sum((_amount(r) for r in completed), ZERO)
    count = len(records)
    average = total / count if count else ZERO
    rate = round(len(completed) / count * 100, 1) if count else 0.0
    return {
        "total_count": count,
        "total_amount": _money(total),
        "completed_count": len(completed),
        "completed_amount": _money(completed_amount),
        "average_amount": _money(average),
        "completion_rate": rate,
    }


def status_groups(records: Iterable[StatementRecord]) -> Dict[str, int]:
    """Counts for the list header: pending, approved-like and rejected-like."""
    groups = {"pending": 0, "approved": 0, "rejected": 0}
    for record in records:
        status = _status(record)
        if status == "PENDING":
            groups["pending"] += 1
        elif status in APPROVED_GROUP:
            groups["approved"] += 1
        elif status in REJECTED_GROUP:
            groups["rejected"] += 1
    return groups


def status_distribution(records: Iterable[StatementRecord]) -> List[Dict[str, Any]]:
    counts = Counter(_status(r) for r in records)
    return [
        {"status": status, "label": status_text(status, ANALYTICS_STATUS_LABELS), "count": count}
        for status, count in counts.items()
    ]


def currency_distribution(records: Iterable[StatementRecord]) -> List[Dict[str, Any]]:
    counts: Counter = Counter()
    totals: Dict[str, Decimal] = {}
    for record in records:
        currency = record.currency or "UNKNOWN"
        counts[currency] += 1
        totals[currency] = totals.get(currency, ZERO) + _amount(record)
    # Counter.most_common keeps first-seen order among ties
    return [
        {"currency": currency, "count": count, "total": _money(totals[currency])}
        for currency, count in counts.most_common()
    ]


def amount_histogram(records: Sequence[StatementRecord], buckets: int = 5) -> List[Dict[str, Any]]:
    """Equal-width amount ranges between the smallest and largest amount.

    Ranges are half-open except the last, so each statement is counted once.
    """
    if not records:
        return []
    amounts = sorted(_amount(r) for r in records)
    low, high = amounts[0], amounts[-1]
    width = (high - low) / buckets
    step = 100 // buckets
    histogram = []
    for index in range(buckets):
        start = low + width * index
        end = high if index == buckets - 1 else low + width * (index + 1)
        histogram.append({
            "label": f"{index * step}-{(index + 1) * step}%",
            "min": _money(start),
            "max": _money(end),
            "count": 0,
        })
    for amount in amounts:
        index = 0 if width == 0 else min(int((amount - low) / width), buckets - 1)
        histogram[index]["count"] += 1
    return histogram


def daily_series(records: Iterable[StatementRecord]) -> List[Dict[str, Any]]:
    """Statements per calendar day (document timezone), oldest day first."""
    days: Dict[str, Dict[str, Any]] = {}
    for record in records:
        key = format_date(record.created_at)
        bucket = days.setdefault(key, {"date": key, "count": 0, "amount": ZERO})
        bucket["count"] += 1
        bucket["amount"] += _amount(record)

    def sort_key(day: str) -> tuple:
        dd, mm, yyyy = day.split(".")
        return int(yyyy), int(mm), int(dd)

    return [
        {**days[key], "amount": _money(days[key]["amount"])}
        for key in sorted(days, key=sort_key)
    ]


def build_analytics(records: Sequence[StatementRecord]) -> Dict[str, Any]:
    """Everything the analytics page renders, in one payload."""
    return {
        "summary": summarize(records),
        "status_groups": status_groups(records),
        "status_distribution": status_distribution(records),
        "currency_distribution": currency_distribution(records),
        "amount_histogram": amount_histogram(records),
        "daily_series": daily_series(records),
    }


__all__ = [
    "summarize",
    "status_groups",
    "status_distribution",
    "currency_distribution",
    "amount_histogram",
    "daily_series",
    "build_analytics",
]
