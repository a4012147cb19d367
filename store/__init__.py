"""
Subscriber persistence.

open_store() picks the backend from configuration at startup; callers only
ever see the SubscriberStore interface.
"""

import logging

from store.base import SubscriberStore
from store.json_store import JsonFileStore
from store.sql_store import SqlStore

logger = logging.getLogger(__name__)

__all__ = ['SubscriberStore', 'JsonFileStore', 'SqlStore', 'open_store']


def open_store(settings):
    """
    Open the subscriber store selected by settings.store_backend.

    Args:
        settings (Settings or StoreConfig): Anything carrying store_backend,
            database_url, store_path and table_prefix

    Returns:
        SubscriberStore: Open store

    Raises:
        StoreError: If the backend cannot be opened
    """
    if settings.store_backend == 'sql':
        logger.info("Using SQL subscriber store")
        return SqlStore(settings.database_url, prefix=settings.table_prefix)

    logger.info(f"Using JSON subscriber store at {settings.store_path}")
    return JsonFileStore(settings.store_path, prefix=settings.table_prefix)
