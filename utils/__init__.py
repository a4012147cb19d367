"""
Utility modules for the refuge monitor application.
"""

from .i18n import translate, detect_language, normalize_language, SUPPORTED_LANGUAGES
from .date_converter import parse_iso_date, format_month, format_timestamp

__all__ = [
    'translate', 'detect_language', 'normalize_language', 'SUPPORTED_LANGUAGES',
    'parse_iso_date', 'format_month', 'format_timestamp',
]
