"""
Date Conversion Utility

Parses the YYYY-MM-DD strings used by saved queries and the snapshot, and
formats months and check timestamps in the monitoring time zone.
"""

from datetime import datetime
import pytz


def parse_iso_date(date_str):
    """
    Parse a YYYY-MM-DD string.

    Args:
        date_str (str): Date string, may be empty

    Returns:
        date or None: None when the string is empty

    Raises:
        ValueError: If date_str is not in valid YYYY-MM-DD format
    """
    if date_str is None or not date_str.strip():
        return None
    try:
        return datetime.strptime(date_str.strip(), '%Y-%m-%d').date()
    except ValueError as e:
        raise ValueError(f"Invalid date format '{date_str}'. Expected YYYY-MM-DD") from e


def format_month(anchor):
    """Format a month anchor like "August 2025"."""
    return anchor.strftime('%B %Y')


def format_timestamp(timestamp, timezone='Europe/Paris'):
    """
    Format a check timestamp for display in the given time zone.

    Args:
        timestamp (datetime or None): Aware or naive (UTC assumed) datetime
        timezone (str): Target time zone

    Returns:
        str: "YYYY-MM-DD HH:MM:SS" or "-" when timestamp is None
    """
    if timestamp is None:
        return '-'
    if timestamp.tzinfo is None:
        timestamp = pytz.utc.localize(timestamp)
    return timestamp.astimezone(pytz.timezone(timezone)).strftime('%Y-%m-%d %H:%M:%S')
