"""
Database Configuration and Management (SQLAlchemy)

Handles engine creation, sessions and schema initialization for the
relational subscriber store.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from config.models import get_models

logger = logging.getLogger(__name__)


def normalize_database_url(database_url):
    """Hosted Postgres often hands out postgres:// URLs, SQLAlchemy wants postgresql://."""
    if database_url.startswith('postgres://'):
        return 'postgresql://' + database_url[len('postgres://'):]
    return database_url


def create_db_engine(database_url):
    """
    Create a SQLAlchemy engine for a database URL.

    Args:
        database_url (str): SQLite or PostgreSQL URL

    Returns:
        sqlalchemy.engine.Engine: Configured engine
    """
    url = normalize_database_url(database_url)
    if url.startswith('sqlite'):
        return create_engine(url, echo=False, connect_args={'check_same_thread': False})
    return create_engine(url, echo=False, pool_pre_ping=True, pool_recycle=300)


def get_session_factory(engine):
    """Session factory bound to engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_database(engine, prefix=''):
    """
    Create the subscriber tables if they do not exist.

    Args:
        engine (sqlalchemy.engine.Engine): Target database
        prefix (str): Table name prefix
    """
    logger.info("Initializing database...")
    models = get_models(prefix)
    models.Base.metadata.create_all(bind=engine)
    logger.info("Database initialized successfully!")
