#!/usr/bin/env python3
"""
Mont Blanc Refuge Monitor - Main Entry Point

Polls the refuge booking calendar, announces newly available dates over
Telegram and serves the status page.

Usage:
    python main.py
    python main.py --once
"""

import argparse
import logging
import signal
import sys
import threading

from config.settings import load_settings
from monitoring.dedup import NotificationEngine
from monitoring.errors import ConfigMissing, StoreError
from monitoring.fetcher import RefugeFetcher
from monitoring.poller import Poller
from services.monitoring_daemon import MonitoringDaemon, keep_alive
from store import open_store
from webapp.app import create_app
from webapp.services.telegram_service import TelegramNotifier
from webapp.state import StatusState

logger = logging.getLogger(__name__)

SHUTDOWN_JOIN_TIMEOUT = 10  # seconds


def configure_logging(log_file):
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def main():
    parser = argparse.ArgumentParser(description="Mont Blanc Refuge Monitor")

    parser.add_argument("--host", default="0.0.0.0", help="Web app host")
    parser.add_argument("--port", type=int, default=None, help="Web app port (default: PORT or 8080)")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument("--once", action="store_true", help="Run a single check and exit")
    parser.add_argument("--log-file", default="refuge_monitor.log", help="Log file ('' to disable)")

    args = parser.parse_args()
    configure_logging(args.log_file)

    try:
        settings = load_settings()
    except ConfigMissing as e:
        logger.error(f"❌ {e}")
        sys.exit(1)
    logger.info(f"Loaded {settings}")

    try:
        store = open_store(settings)
    except StoreError as e:
        logger.error(f"❌ Could not open subscriber store: {e}")
        sys.exit(1)

    notifier = TelegramNotifier(
        settings.bot_token,
        chat_ids=settings.chat_ids,
        store=store,
        admin_chat_id=settings.admin_chat_id,
    )
    ttl_seconds = settings.notified_ttl_hours * 3600 if settings.notified_ttl_hours else None
    engine = NotificationEngine(
        notifier,
        store=store,
        subscriber_filtering=settings.subscriber_filtering,
        dedup_scope=settings.dedup_scope,
        ttl_seconds=ttl_seconds,
    )
    state = StatusState()
    poller = Poller(
        RefugeFetcher(settings.session_id, pax=settings.pax),
        state,
        engine,
        notifier,
        settings.anchors,
        max_attempts=settings.waiting_room_max_attempts,
        base_delay=settings.waiting_room_base_delay,
        timezone=settings.timezone,
    )

    if args.once:
        snapshot = poller.run_cycle()
        for refuge_name, dates in snapshot.items():
            print(f"🏔  {refuge_name}")
            for day, status in sorted(dates.items()):
                print(f"   📅 {day}: {status}")
        store.close()
        return

    daemon = MonitoringDaemon(poller, notifier, settings.check_interval_minutes * 60)
    daemon_thread = threading.Thread(target=daemon.run, name="monitoring-daemon", daemon=True)
    daemon_thread.start()

    if settings.keepalive_url:
        threading.Thread(
            target=keep_alive,
            args=(settings.keepalive_url, lambda: daemon.running),
            name="keep-alive",
            daemon=True,
        ).start()

    def signal_handler(signum, frame):
        """Handle shutdown signals gracefully."""
        daemon.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    app = create_app(state, store=store, notifier=notifier, settings=settings)
    port = args.port or settings.port
    print(f"🚀 Starting Mont Blanc Refuge Monitor...")
    print(f"📍 Server running at: http://{args.host}:{port}")
    print(f"🔧 Debug mode: {'ON' if args.debug else 'OFF'}")
    try:
        app.run(host=args.host, port=port, debug=args.debug, use_reloader=False)
    finally:
        daemon.stop()
        daemon_thread.join(SHUTDOWN_JOIN_TIMEOUT)
        store.close()


if __name__ == "__main__":
    main()
