"""
Availability Poller

Runs one check cycle: fetches every refuge for every monitored month,
merges the results into a snapshot, publishes it to the status page and
hands it to the notification engine.
"""

import logging
import time
from datetime import datetime

import pytz

from models.refuge import REFUGES
from monitoring.errors import TransportError, UpstreamError, ReauthRequired, WaitingRoomExhausted
from monitoring.parser import fetch_availability, summarize_availability
from utils.date_converter import format_month

logger = logging.getLogger(__name__)

REAUTH_ALERT = ("🔑 Booking session expired. Update the PHPSESSID cookie and restart "
                "the monitor; checks are failing until then.")


class Poller:
    """
    Fetches, publishes and notifies, one cycle at a time.

    Args:
        fetcher (RefugeFetcher): Upstream client
        state (StatusState): Status page state
        engine (NotificationEngine): Change detection and fan-out
        notifier (TelegramNotifier): Used for the session-expired alert
        anchors (list): First day of each monitored month
        max_attempts (int): Waiting-room fetch attempts per page
        base_delay (float): First waiting-room delay in seconds
        timezone (str): Zone of the recorded check time
        refuges (sequence): Refuges to check
        sleep (callable): One-second tick used for backoff waits
    """

    def __init__(self, fetcher, state, engine, notifier, anchors, max_attempts=4, base_delay=15,
                 timezone='Europe/Paris', refuges=REFUGES, sleep=time.sleep):
        self.fetcher = fetcher
        self.state = state
        self.engine = engine
        self.notifier = notifier
        self.anchors = list(anchors)
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.timezone = pytz.timezone(timezone)
        self.refuges = tuple(refuges)
        self._tick = sleep
        self.running = True
        self.reauth_alerted = False

    def stop(self):
        """Cut short any backoff wait in progress."""
        self.running = False

    def _sleep(self, seconds):
        # Check every second if we should stop
        for _ in range(int(seconds)):
            if not self.running:
                break
            self._tick(1)

    def _alert_reauth(self):
        if self.reauth_alerted:
            logger.warning("Session still expired, alert already sent")
            return
        self.notifier.notify_operators(REAUTH_ALERT)
        self.reauth_alerted = True

    def run_cycle(self):
        """
        Run one full check.

        A cycle cut short by stop() is neither published nor notified.

        Returns:
            dict: Snapshot {refuge name: {date: status}}
        """
        snapshot = {refuge.name: {} for refuge in self.refuges}
        reauth_failed = False

        for anchor in self.anchors:
            if reauth_failed or not self.running:
                break
            for refuge in self.refuges:
                if not self.running:
                    break
                logger.info(f"Checking {refuge.name} for {format_month(anchor)}...")
                try:
                    dates = fetch_availability(
                        self.fetcher, refuge, anchor,
                        max_attempts=self.max_attempts,
                        base_delay=self.base_delay,
                        sleep=self._sleep,
                    )
                except ReauthRequired as e:
                    logger.error(f"❌ {e}")
                    self._alert_reauth()
                    reauth_failed = True
                    break
                except (TransportError, UpstreamError, WaitingRoomExhausted) as e:
                    logger.error(f"❌ Error checking {refuge.name}: {e}")
                    continue

                self.reauth_alerted = False
                snapshot[refuge.name].update(dates)
                logger.info(f"{refuge.name}: {len(dates)} dates")

        if not self.running:
            # Shutdown cut the cycle short; keep the last published snapshot
            logger.info("Check interrupted by shutdown, not publishing partial results")
            return snapshot

        _, summary = summarize_availability(snapshot)
        logger.info(summary)

        self.state.write(snapshot, datetime.now(self.timezone))
        self.engine.process(snapshot, warn_on_empty=not reauth_failed)
        return snapshot
