#!/usr/bin/env python3
"""
Database Initialization Script

Creates the subscriber tables for the relational store (DATABASE_URL,
honouring DB_TABLE_PREFIX). The monitor does this on startup as well; run
it by hand to prepare a fresh database before the first deploy.
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from config.database import create_db_engine, init_database


def main():
    """Create the subscriber tables."""
    load_dotenv()
    database_url = os.getenv('DATABASE_URL')
    prefix = os.getenv('DB_TABLE_PREFIX', '')

    print("🚀 Initializing Refuge Monitor Database...")
    print("=" * 50)

    if not database_url:
        print("❌ DATABASE_URL is not set")
        sys.exit(1)

    try:
        engine = create_db_engine(database_url)
        init_database(engine, prefix)
        engine.dispose()
    except SQLAlchemyError as e:
        print(f"❌ Error initializing database: {e}")
        sys.exit(1)

    print("✅ Database initialized successfully!")
    print("\n📊 Database Structure:")
    print(f"   - {prefix}subscribers: Telegram chats and their language")
    print(f"   - {prefix}subscriptions: Saved refuge/date-range queries")
    print("\n🎯 Ready to start monitoring!")


if __name__ == "__main__":
    main()
