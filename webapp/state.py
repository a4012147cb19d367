"""
Status State

Holds the most recent availability snapshot and the time of the last check.
The poller writes it once per cycle; every web request reads it.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class StatusState:
    """
    Latest snapshot behind a readers-writer lock.

    Any number of readers may hold the lock at once; a writer waits for them
    to finish and blocks new readers while it swaps the snapshot in.
    """

    def __init__(self):
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False
        self._snapshot = {}
        self._last_check = None

    def _acquire_read(self):
        with self._condition:
            while self._writing:
                self._condition.wait()
            self._readers += 1

    def _release_read(self):
        with self._condition:
            self._readers -= 1
            if self._readers == 0:
                self._condition.notify_all()

    def read(self):
        """
        Return the current snapshot and last check time.

        Returns:
            tuple: (snapshot dict copy, datetime or None)
        """
        self._acquire_read()
        try:
            snapshot = {name: dict(dates) for name, dates in self._snapshot.items()}
            return snapshot, self._last_check
        finally:
            self._release_read()

    def write(self, snapshot, timestamp):
        """
        Replace the snapshot.

        Args:
            snapshot (dict): {refuge name: {date: status}}
            timestamp (datetime): When the check finished; None keeps the previous one
        """
        with self._condition:
            while self._writing or self._readers:
                self._condition.wait()
            self._writing = True

        try:
            self._snapshot = {name: dict(dates) for name, dates in snapshot.items()}
            if timestamp is not None:
                self._last_check = timestamp
            else:
                logger.warning("Status updated without a check time")
        finally:
            with self._condition:
                self._writing = False
                self._condition.notify_all()

        logger.info(f"Updated web state - Last check: {self._last_check}, Refuges: {len(snapshot)}")
