"""Russian-locale formatting helpers shared by the PDF documents and analytics.

Rules (mirror ``Intl.NumberFormat('ru-RU')`` used by the dashboard):
- Thousands grouped by a non-breaking space (U+00A0)
- Comma as decimal separator, always two decimals
- HALF_UP rounding at 2 decimal places
- Pure string manipulation (avoid process locale dependence)

Examples:
>>> format_amount(1234.5)
'1\\xa0234,50'
>>> format_amount('1500')
'1\\xa0500,00'
>>> format_amount(-987654321)
'-987\\xa0654\\xa0321,00'
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone, UTC
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Mapping, Optional, Union
import logging

LOGGER = logging.getLogger(__name__)

Number = Union[int, float, Decimal, str]

GROUP_SEPARATOR = "\u00a0"
DECIMAL_SEPARATOR = ","
NAN_TEXT = "не число"
CENT = Decimal("0.01")

DOCUMENT_STATUS_LABELS: dict[str, str] = {
    "PENDING": "В обработке",
    "APPROVED": "Одобрено",
    "REJECTED": "Отклонено",
    "COMPLETED": "Перевод успешно совершен",
    "FAILED": "Отклонено",
    "CANCELLED": "Отменено",
}

# Dashboard wording differs only for COMPLETED
ANALYTICS_STATUS_LABELS: dict[str, str] = {
    **DOCUMENT_STATUS_LABELS,
    "COMPLETED": "Завершено",
}

__all__ = [
    "DOCUMENT_STATUS_LABELS",
    "ANALYTICS_STATUS_LABELS",
    "parse_amount",
    "round_cents",
    "format_amount",
    "format_date",
    "format_full_date",
    "status_text",
]


def parse_amount(raw: Number) -> Decimal:
    """Parse a decimal-as-string amount.

    Malformed input is not rejected: it yields ``Decimal('NaN')`` so the
    documents still render (the amount shows up as ``не число``).
    """
    if isinstance(raw, Decimal):
        value = raw
    else:
        try:
            value = Decimal(str(raw).strip())
        except (InvalidOperation, ValueError):
            LOGGER.warning("Unparseable amount %r rendered as NaN", raw)
            return Decimal("NaN")
    # sNaN raises on any arithmetic; hand out the quiet form only
    if value.is_nan():
        return Decimal("NaN")
    return value


def round_cents(value: Decimal) -> Decimal:
    """HALF_UP to two decimals, with enough precision for any finite amount."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _group_thousands(digits: str) -> str:
    groups: list[str] = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    if digits:
        groups.insert(0, digits)
    return GROUP_SEPARATOR.join(groups)


def format_amount(value: Number) -> str:
    """Format an amount with ru-RU grouping and exactly two decimals."""
    dec = parse_amount(value)
    if not dec.is_finite():
        return NAN_TEXT
    dec = round_cents(dec)
    num_str = format(dec, "f")
    sign = ""
    if num_str.startswith("-"):
        sign, num_str = "-", num_str[1:]
    whole, _, frac = num_str.partition(".")
    frac = (frac + "00")[:2]
    if sign and whole == "0" and frac == "00":
        sign = ""
    return sign + _group_thousands(whole) + DECIMAL_SEPARATOR + frac


def _document_tz(utc_offset_hours: Optional[float]) -> timezone:
    if utc_offset_hours is None:
        from statement_desk.config.settings import get_settings  # local import avoids cycle
        utc_offset_hours = get_settings().DOCUMENT_UTC_OFFSET_HOURS
    return timezone(timedelta(hours=utc_offset_hours))


def _localize(value: Union[datetime, str], utc_offset_hours: Optional[float]) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        # Naive timestamps come from the database in UTC
        value = value.replace(tzinfo=UTC)
    return value.astimezone(_document_tz(utc_offset_hours))


def format_date(value: Union[datetime, str], utc_offset_hours: Optional[float] = None) -> str:
    """``19.10.2026`` style date."""
    return _localize(value, utc_offset_hours).strftime("%d.%m.%Y")


def format_full_date(value: Union[datetime, str], utc_offset_hours: Optional[float] = None) -> str:
    """``19.10.2026, 14:05`` style date with time."""
    return _localize(value, utc_offset_hours).strftime("%d.%m.%Y, %H:%M")


def status_text(status: str, labels: Mapping[str, str] = DOCUMENT_STATUS_LABELS) -> str:
    """Human label for a status, falling back to the raw value."""
    return labels.get(status, status)
