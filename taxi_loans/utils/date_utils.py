"""Date manipulation utilities"""

from datetime import date, datetime, timedelta
from typing import Optional


def next_due_date(from_date: date, interval_days: int = 7) -> date:
    """Due date one repayment interval after from_date"""
    return from_date + timedelta(days=interval_days)


def loan_end_date(start_date: date, terms: int, interval_days: int = 7) -> date:
    """Date the final scheduled term falls due"""
    return start_date + timedelta(days=terms * interval_days)


def parse_sheet_date(value: object, fallback_format: str = "%d/%m/%Y") -> Optional[date]:
    """
    Parse a date cell or column header from an imported sheet.

    Accepts date/datetime objects, ISO strings (2024-03-14, optionally with a
    time part) and strings in fallback_format. Blank values return None.

    Raises:
        ValueError: non-blank value that matches neither format
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    return datetime.strptime(text, fallback_format).date()
