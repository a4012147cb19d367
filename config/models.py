"""
SQLAlchemy ORM Models

Table names carry an optional prefix (DB_TABLE_PREFIX) so several
deployments can share one database. Each prefix gets its own declarative
base, built once and cached.
"""

from collections import namedtuple

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship, declarative_base
from sqlalchemy.sql import func

TableModels = namedtuple('TableModels', ['Base', 'SubscriberRecord', 'QueryRecord'])

_models_by_prefix = {}


def get_models(prefix=''):
    """
    Return the ORM classes for a table prefix.

    Args:
        prefix (str): Table name prefix

    Returns:
        TableModels: (Base, SubscriberRecord, QueryRecord)
    """
    if prefix in _models_by_prefix:
        return _models_by_prefix[prefix]

    Base = declarative_base()
    subscribers_table = f'{prefix}subscribers'

    class SubscriberRecord(Base):
        __tablename__ = subscribers_table

        chat_id = Column(String, primary_key=True)
        username = Column(String, default='')
        first_name = Column(String, default='')
        last_name = Column(String, default='')
        language = Column(String, nullable=False, default='en')
        plan = Column(String, nullable=False, default='free')
        is_active = Column(Boolean, nullable=False, default=True)
        created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
        updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

        # Relationships
        queries = relationship("QueryRecord", back_populates="subscriber", cascade="all, delete-orphan")

    class QueryRecord(Base):
        __tablename__ = f'{prefix}subscriptions'

        id = Column(String, primary_key=True)
        chat_id = Column(String, ForeignKey(f'{subscribers_table}.chat_id', ondelete='CASCADE'), nullable=False)
        refuge = Column(String, nullable=False, default='*')
        date_from = Column(String, default='')
        date_to = Column(String, default='')
        created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
        updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

        # Relationships
        subscriber = relationship("SubscriberRecord", back_populates="queries")

    models = TableModels(Base, SubscriberRecord, QueryRecord)
    _models_by_prefix[prefix] = models
    return models
