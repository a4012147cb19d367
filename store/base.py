"""
Subscriber Store Interface

Both backends (embedded JSON file, relational database) implement this
class; the rest of the application only talks to SubscriberStore.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone

DEFAULT_PLAN = 'free'
DEFAULT_LANGUAGE = 'en'


def utcnow():
    return datetime.now(timezone.utc)


def new_query_id(chat_id):
    """Query IDs are the chat ID plus the creation time in nanoseconds."""
    return f"{chat_id}-{time.time_ns()}"


class SubscriberStore(ABC):
    """Persistence for subscribers and their saved queries."""

    @abstractmethod
    def upsert(self, subscriber):
        """
        Insert or overwrite a subscriber.

        Empty plan/language get defaults, created_at is kept from an existing
        record and updated_at is refreshed. Calling it twice with the same
        chat_id leaves one record holding the latest values.

        Returns:
            Subscriber: The stored record
        """

    @abstractmethod
    def get(self, chat_id):
        """Return the subscriber or raise NotFound."""

    @abstractmethod
    def list_active(self):
        """Return all subscribers with is_active set."""

    @abstractmethod
    def deactivate(self, chat_id):
        """Soft-delete a subscriber. Raises NotFound if it does not exist."""

    @abstractmethod
    def add_query(self, query):
        """Save a query and return its ID (generated when empty)."""

    @abstractmethod
    def list_queries_for(self, chat_id):
        """Return the saved queries of one subscriber."""

    def close(self):
        """Release backend resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
