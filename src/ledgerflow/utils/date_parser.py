"""Date parsing utilities."""

from datetime import date, datetime
from typing import Optional

from dateutil import parser as date_parser


def parse_date(date_str: str, date_format: Optional[str] = None) -> date:
    """Parse a date string into a date object.

    Bank exports use absolute dates only: "2024-01-15", "01/15/2024",
    "January 15, 2024", and OFX stamps such as "20240115120000[-5:EST]".

    Args:
        date_str: Date string
        date_format: Optional strptime format tried before free-form parsing

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if date_str is None or not date_str.strip():
        raise ValueError("Empty date string")
    date_str = date_str.strip()

    if date_format:
        try:
            return datetime.strptime(date_str, date_format).date()
        except ValueError:
            pass

    # OFX: YYYYMMDD, optionally followed by time and a bracketed zone
    compact = date_str.split("[", 1)[0]
    if len(compact) >= 8 and compact[:8].isdigit():
        try:
            return datetime.strptime(compact[:8], "%Y%m%d").date()
        except ValueError:
            pass

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")
