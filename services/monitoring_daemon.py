"""
Monitoring Daemon

Background service that runs the availability check on a fixed interval
and keeps the hosted instance awake.
"""

import time
import logging

import requests

from monitoring.errors import MonitorError

logger = logging.getLogger(__name__)

KEEPALIVE_INTERVAL = 14 * 60  # seconds
KEEPALIVE_TIMEOUT = 30

STARTUP_MESSAGE = "🚀 Refuge monitor started. Checking every {minutes} minute(s)."
SHUTDOWN_MESSAGE = "🛑 Refuge monitor stopped after {cycles} check(s)."


class MonitoringDaemon:
    """
    Runs Poller.run_cycle until stopped.

    Cycles never overlap: the next one starts interval_seconds after the
    previous one started, or right away if the previous one overran.

    Args:
        poller (Poller): Check cycle to run
        notifier (TelegramNotifier): Startup and shutdown notices
        interval_seconds (int): Time between cycle starts
        sleep (callable): One-second tick, replaceable in tests
        clock (callable): Monotonic clock, replaceable in tests
    """

    def __init__(self, poller, notifier, interval_seconds, sleep=time.sleep, clock=time.monotonic):
        self.poller = poller
        self.notifier = notifier
        self.interval_seconds = interval_seconds
        self._tick = sleep
        self._clock = clock
        self.running = True
        self.cycle_count = 0

    def stop(self):
        """Ask the loop to finish after the current step."""
        if self.running:
            logger.info("Received shutdown signal. Stopping gracefully...")
        self.running = False
        self.poller.stop()

    def sleep(self, seconds):
        # Check every second if we should stop (allows responsive shutdown)
        for _ in range(int(seconds)):
            if not self.running:
                break
            self._tick(1)

    def run_once(self):
        """Run a single cycle, logging instead of raising recoverable errors."""
        self.cycle_count += 1
        logger.info(f"=== Monitoring Cycle #{self.cycle_count} ===")
        try:
            return self.poller.run_cycle()
        except MonitorError as e:
            logger.error(f"Error in monitoring cycle: {e}")
        except Exception as e:
            logger.error(f"Unexpected error in monitoring cycle: {e}", exc_info=True)
        return None

    def _notify(self, text):
        try:
            self.notifier.notify_operators(text)
        except Exception as e:
            logger.warning(f"Could not send notification: {e}")

    def run(self):
        """Main daemon loop."""
        minutes = max(1, self.interval_seconds // 60)
        logger.info(f"Starting Monitoring Daemon (interval {self.interval_seconds} seconds)")
        self._notify(STARTUP_MESSAGE.format(minutes=minutes))

        try:
            while self.running:
                started = self._clock()
                self.run_once()

                wait_time = max(0, int(self.interval_seconds - (self._clock() - started)))
                if self.running:
                    logger.info(f"Waiting {wait_time} seconds before next cycle...")
                    self.sleep(wait_time)
        finally:
            self._notify(SHUTDOWN_MESSAGE.format(cycles=self.cycle_count))
            logger.info("Monitoring Daemon stopped")


def ping_health(base_url, session=None, timeout=KEEPALIVE_TIMEOUT):
    """
    GET <base_url>/health once.

    Returns:
        bool: True on a 200 response
    """
    url = base_url.rstrip('/') + '/health'
    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"❌ Keep-alive ping failed: {e}")
        return False

    if response.status_code == 200:
        logger.info("✅ Keep-alive ping successful")
        return True
    logger.error(f"❌ Keep-alive ping returned status: {response.status_code}")
    return False


def keep_alive(base_url, should_run, interval_seconds=KEEPALIVE_INTERVAL, session=None, sleep=time.sleep):
    """
    Ping the health endpoint every interval_seconds while should_run() is true.

    Args:
        base_url (str): Public URL of this instance
        should_run (callable): Returns False once shutdown has started
        interval_seconds (int): Time between pings
        session (requests.Session, optional): Session to reuse
        sleep (callable): One-second tick
    """
    logger.info(f"🌐 Keep-alive using base URL: {base_url}")
    while should_run():
        for _ in range(interval_seconds):
            if not should_run():
                return
            sleep(1)
        ping_health(base_url, session)
