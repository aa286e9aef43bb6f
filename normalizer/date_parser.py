"""
Date parser for ledger dates typed by staff or read from spreadsheets.
"""
from datetime import date, datetime
from typing import Optional, Union

from dateutil import parser as dateutil_parser

from config import DATE_FORMATS, ISO_DATE_FORMAT


def parse_date(value: Union[str, datetime, date, None]) -> Optional[date]:
    """
    Parse a date value from various formats into a Python date object.

    Args:
        value: A string that might be a date, or a datetime/date object

    Returns:
        A date object if parsing succeeds, None otherwise
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    value_str = _normalize_date_string(str(value))
    if not value_str or value_str.lower() in ("nan", "nat", "none"):
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value_str, fmt).date()
        except ValueError:
            continue

    # dateutil handles the odd formats; day first, as on Indian sheets
    try:
        return dateutil_parser.parse(value_str, dayfirst=True).date()
    except (ValueError, OverflowError):
        return None


def _normalize_date_string(value: str) -> str:
    value = " ".join(value.split())

    # "15/01-2025" -> "15/01/2025", but leave "15-Jan-2025" alone
    if "/" in value and "-" in value and not any(c.isalpha() for c in value):
        value = value.replace("-", "/")

    return value


def is_valid_date(value: Union[str, datetime, date, None]) -> bool:
    """Check if a value can be parsed as a valid date."""
    return parse_date(value) is not None


def to_iso_date(value: Union[str, datetime, date, None]) -> Optional[str]:
    """
    Normalize a date value to the YYYY-MM-DD string the ledger stores.

    Returns:
        ISO date string, or None when the value is not a date
    """
    parsed = parse_date(value)
    if parsed is None:
        return None
    return parsed.strftime(ISO_DATE_FORMAT)


def today_iso() -> str:
    """Today's date as YYYY-MM-DD."""
    return date.today().strftime(ISO_DATE_FORMAT)
