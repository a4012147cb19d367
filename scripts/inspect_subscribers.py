#!/usr/bin/env python3
"""
Subscriber Inspection Script

Lists active subscribers and their saved queries from whichever store the
environment points at (DATABASE_URL for SQL, otherwise STORE_PATH).
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from config.settings import load_store_config
from monitoring.errors import ConfigMissing, StoreError
from store import open_store


def main():
    try:
        config = load_store_config()
    except ConfigMissing as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)

    try:
        with open_store(config) as store:
            subscribers = store.list_active()
            print(f"👥 Active subscribers: {len(subscribers)}")
            print("=" * 50)
            for subscriber in subscribers:
                name = f"@{subscriber.username}" if subscriber.username else subscriber.first_name or '-'
                print(f"\n💬 {subscriber.chat_id} ({name}, {subscriber.language}, plan {subscriber.plan})")
                queries = store.list_queries_for(subscriber.chat_id)
                if not queries:
                    print("   (no saved queries: all refuges, all dates)")
                for query in queries:
                    print(f"   🏔  {query.refuge}  {query.date_from or '…'} → {query.date_to or '…'}")
    except StoreError as e:
        print(f"❌ Error reading subscribers: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
