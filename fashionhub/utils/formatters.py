"""
Formatting utilities for API payloads, PDFs and emails.
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime, time
from typing import Union, Optional

from fashionhub.exceptions import InvalidArgumentError


def money_display(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Human-facing money with thousands separator and 2 decimals.

    Examples:
        money_display(1500) -> "$1,500.00"
        money_display(-5) -> "-$5.00"
        money_display(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = "-" if num < 0 else ""
    return f"{sign}${abs(num):,.2f}"


def date_display(value: Union[date, datetime, None]) -> str:
    """
    Date as "Jan 12, 2026".
    """
    if value is None:
        return "-"
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        return "-"
    return value.strftime("%b %d, %Y")


def parse_date_filter(value: Optional[str], field: str, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a YYYY-MM-DD (or full ISO) query string into a datetime bound.

    end_of_day=True turns a bare date into 23:59:59.999999 so that
    `end_date=2026-01-31` includes the whole day.
    """
    if not value:
        return None

    raw = value.strip()
    try:
        if len(raw) == 10:
            parsed = date.fromisoformat(raw)
            return datetime.combine(parsed, time.max if end_of_day else time.min)
        return datetime.fromisoformat(raw)
    except ValueError:
        raise InvalidArgumentError(f'{field} must be an ISO date (YYYY-MM-DD)', field=field)
