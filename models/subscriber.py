"""
Subscriber Data Model

Defines the structure for Telegram subscribers and their saved filters.
"""

from dataclasses import dataclass, asdict
from datetime import datetime


def _parse_timestamp(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class _Record:
    """Shared JSON conversion for the dataclasses below."""

    def to_dict(self):
        data = asdict(self)
        for key in ('created_at', 'updated_at'):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data

    @classmethod
    def from_dict(cls, data):
        data = dict(data)
        data['created_at'] = _parse_timestamp(data.get('created_at'))
        data['updated_at'] = _parse_timestamp(data.get('updated_at'))
        return cls(**data)


@dataclass
class Subscriber(_Record):
    """A Telegram chat that receives availability alerts."""

    chat_id: str
    username: str = ''
    first_name: str = ''
    last_name: str = ''
    language: str = 'en'
    plan: str = ''
    is_active: bool = True
    created_at: datetime = None
    updated_at: datetime = None


@dataclass
class Query(_Record):
    """
    A subscriber's saved filter.

    refuge is a refuge name or "*"; date_from/date_to are YYYY-MM-DD strings
    and either may be empty.
    """

    chat_id: str
    refuge: str = '*'
    date_from: str = ''
    date_to: str = ''
    id: str = ''
    created_at: datetime = None
    updated_at: datetime = None
