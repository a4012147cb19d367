"""
SQL Store

Relational backend (SQLite or PostgreSQL) for subscribers and their
queries, built on the SQLAlchemy ORM.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from config.database import create_db_engine, get_session_factory, init_database
from config.models import get_models
from models.subscriber import Subscriber, Query
from monitoring.errors import StoreError, NotFound
from store.base import SubscriberStore, DEFAULT_PLAN, DEFAULT_LANGUAGE, utcnow, new_query_id

logger = logging.getLogger(__name__)


def _to_subscriber(record):
    return Subscriber(
        chat_id=record.chat_id,
        username=record.username or '',
        first_name=record.first_name or '',
        last_name=record.last_name or '',
        language=record.language,
        plan=record.plan,
        is_active=record.is_active,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _to_query(record):
    return Query(
        id=record.id,
        chat_id=record.chat_id,
        refuge=record.refuge,
        date_from=record.date_from or '',
        date_to=record.date_to or '',
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class SqlStore(SubscriberStore):
    """
    Subscriber store backed by a relational database.

    Args:
        database_url (str): SQLAlchemy database URL
        prefix (str): Table name prefix
    """

    def __init__(self, database_url, prefix=''):
        self.models = get_models(prefix)
        try:
            self.engine = create_db_engine(database_url)
            init_database(self.engine, prefix)
        except SQLAlchemyError as e:
            raise StoreError(f"Error opening database: {e}") from e
        self.SessionLocal = get_session_factory(self.engine)

    def close(self):
        self.engine.dispose()

    def upsert(self, subscriber):
        if not subscriber.chat_id:
            raise StoreError("chat id required")

        SubscriberRecord = self.models.SubscriberRecord
        session = self.SessionLocal()
        try:
            now = utcnow()
            record = session.get(SubscriberRecord, subscriber.chat_id)
            if record is None:
                record = SubscriberRecord(chat_id=subscriber.chat_id, created_at=subscriber.created_at or now)
                session.add(record)

            record.username = subscriber.username
            record.first_name = subscriber.first_name
            record.last_name = subscriber.last_name
            record.language = subscriber.language or DEFAULT_LANGUAGE
            record.plan = subscriber.plan or DEFAULT_PLAN
            record.is_active = subscriber.is_active
            record.updated_at = now

            session.commit()
            logger.info(f"Saved subscriber {subscriber.chat_id}")
            return _to_subscriber(record)
        except SQLAlchemyError as e:
            logger.error(f"Error saving subscriber {subscriber.chat_id}: {e}")
            session.rollback()
            raise StoreError(f"Error saving subscriber {subscriber.chat_id}: {e}") from e
        finally:
            session.close()

    def get(self, chat_id):
        session = self.SessionLocal()
        try:
            record = session.get(self.models.SubscriberRecord, str(chat_id))
            if record is None:
                raise NotFound(f"Subscriber {chat_id} not found")
            return _to_subscriber(record)
        except SQLAlchemyError as e:
            raise StoreError(f"Error fetching subscriber {chat_id}: {e}") from e
        finally:
            session.close()

    def list_active(self):
        SubscriberRecord = self.models.SubscriberRecord
        session = self.SessionLocal()
        try:
            stmt = (
                select(SubscriberRecord)
                .where(SubscriberRecord.is_active.is_(True))
                .order_by(SubscriberRecord.created_at.asc())
            )
            return [_to_subscriber(record) for record in session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Error fetching active subscribers: {e}") from e
        finally:
            session.close()

    def deactivate(self, chat_id):
        session = self.SessionLocal()
        try:
            record = session.get(self.models.SubscriberRecord, str(chat_id))
            if record is None:
                raise NotFound(f"Subscriber {chat_id} not found")
            record.is_active = False
            record.updated_at = utcnow()
            session.commit()
            logger.info(f"Deactivated subscriber {chat_id}")
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(f"Error deactivating subscriber {chat_id}: {e}") from e
        finally:
            session.close()

    def add_query(self, query):
        session = self.SessionLocal()
        try:
            now = utcnow()
            record = self.models.QueryRecord(
                id=query.id or new_query_id(query.chat_id),
                chat_id=query.chat_id,
                refuge=query.refuge,
                date_from=query.date_from,
                date_to=query.date_to,
                created_at=now,
                updated_at=now,
            )
            session.add(record)
            session.commit()
            logger.info(f"Saved query {record.id} for {record.chat_id}")
            return record.id
        except SQLAlchemyError as e:
            logger.error(f"Error saving query for {query.chat_id}: {e}")
            session.rollback()
            raise StoreError(f"Error saving query for {query.chat_id}: {e}") from e
        finally:
            session.close()

    def list_queries_for(self, chat_id):
        QueryRecord = self.models.QueryRecord
        session = self.SessionLocal()
        try:
            stmt = (
                select(QueryRecord)
                .where(QueryRecord.chat_id == str(chat_id))
                .order_by(QueryRecord.created_at.asc())
            )
            return [_to_query(record) for record in session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"Error fetching queries for {chat_id}: {e}") from e
        finally:
            session.close()
