"""
JSON File Store

Embedded key-value backend: one JSON document holding a subscribers bucket
and a queries bucket, each keyed by ID. Every write replaces the file
atomically.
"""

import json
import logging
import os
import threading
from dataclasses import replace
from pathlib import Path

from models.subscriber import Subscriber, Query
from monitoring.errors import StoreError, NotFound
from store.base import SubscriberStore, DEFAULT_PLAN, DEFAULT_LANGUAGE, utcnow, new_query_id

logger = logging.getLogger(__name__)


class JsonFileStore(SubscriberStore):
    """
    Subscriber store backed by a local JSON file.

    Args:
        path (str or Path): File location, created on first use
        prefix (str): Prefix for the bucket names
    """

    def __init__(self, path, prefix=''):
        self.path = Path(path)
        self.subscribers_bucket = f"{prefix}subscribers"
        self.queries_bucket = f"{prefix}queries"
        self._lock = threading.RLock()

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create store directory {self.path.parent}: {e}") from e

        with self._lock:
            data = self._load()
            data.setdefault(self.subscribers_bucket, {})
            data.setdefault(self.queries_bucket, {})
            self._save(data)
        logger.info(f"Opened JSON store at {self.path}")

    def _load(self):
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding='utf-8') or '{}')
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Error loading store from {self.path}: {e}") from e

    def _save(self, data):
        tmp = self.path.with_name(self.path.name + '.tmp')
        try:
            with open(tmp, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)
            os.replace(tmp, self.path)
        except OSError as e:
            raise StoreError(f"Error saving store to {self.path}: {e}") from e

    def upsert(self, subscriber):
        if not subscriber.chat_id:
            raise StoreError("chat id required")

        with self._lock:
            data = self._load()
            bucket = data.setdefault(self.subscribers_bucket, {})
            existing = bucket.get(subscriber.chat_id)

            now = utcnow()
            created_at = subscriber.created_at
            if existing and existing.get('created_at'):
                created_at = Subscriber.from_dict(existing).created_at
            stored = replace(
                subscriber,
                plan=subscriber.plan or DEFAULT_PLAN,
                language=subscriber.language or DEFAULT_LANGUAGE,
                created_at=created_at or now,
                updated_at=now,
            )
            bucket[subscriber.chat_id] = stored.to_dict()
            self._save(data)

        logger.info(f"Saved subscriber {subscriber.chat_id}")
        return stored

    def get(self, chat_id):
        with self._lock:
            record = self._load().get(self.subscribers_bucket, {}).get(str(chat_id))
        if record is None:
            raise NotFound(f"Subscriber {chat_id} not found")
        return Subscriber.from_dict(record)

    def list_active(self):
        with self._lock:
            records = self._load().get(self.subscribers_bucket, {}).values()
        subscribers = [Subscriber.from_dict(record) for record in records]
        return [subscriber for subscriber in subscribers if subscriber.is_active]

    def deactivate(self, chat_id):
        with self._lock:
            data = self._load()
            bucket = data.get(self.subscribers_bucket, {})
            record = bucket.get(str(chat_id))
            if record is None:
                raise NotFound(f"Subscriber {chat_id} not found")
            record['is_active'] = False
            record['updated_at'] = utcnow().isoformat()
            self._save(data)
        logger.info(f"Deactivated subscriber {chat_id}")

    def add_query(self, query):
        now = utcnow()
        stored = replace(
            query,
            id=query.id or new_query_id(query.chat_id),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            data = self._load()
            data.setdefault(self.queries_bucket, {})[stored.id] = stored.to_dict()
            self._save(data)

        logger.info(f"Saved query {stored.id} for {stored.chat_id}")
        return stored.id

    def list_queries_for(self, chat_id):
        with self._lock:
            records = self._load().get(self.queries_bucket, {}).values()
        queries = [Query.from_dict(record) for record in records if record.get('chat_id') == str(chat_id)]
        return sorted(queries, key=lambda q: q.created_at or utcnow())
