"""
Dedup and Notification Engine

Decides which dates in a fresh snapshot are worth announcing and who gets
told. A date is announced once: after that it sits in a NotifiedDateSet
until the process restarts (or its TTL runs out, when one is configured).
"""

import html
import logging
import threading
import time
from collections import namedtuple

from models.refuge import FULL, REFUGES
from models.subscriber import Query
from monitoring.errors import StoreError, ParseAnomaly
from monitoring.parser import count_dates
from utils.date_converter import parse_iso_date
from utils.i18n import translate, DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)

WILDCARD = '*'

SCRAPE_WARNING = (
    "⚠️ No dates found for any refuge in the last check.\n"
    "The booking page layout may have changed or the scrape is failing."
)

AvailablePair = namedtuple('AvailablePair', ['refuge', 'date', 'status'])

CycleReport = namedtuple('CycleReport', ['total_dates', 'new_pairs', 'messages_sent', 'warning_sent'])


class NotifiedDateSet:
    """
    Dates that have already been announced.

    With ttl_seconds=None the set only ever grows for the lifetime of the
    process. With a TTL, a date drops out ttl_seconds after it was first
    added and may be announced again.
    """

    def __init__(self, ttl_seconds=None, clock=time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def _expired(self, added_at):
        return self.ttl_seconds is not None and self._clock() - added_at >= self.ttl_seconds

    def _prune(self):
        if self.ttl_seconds is None:
            return
        for day in [d for d, added_at in self._entries.items() if self._expired(added_at)]:
            del self._entries[day]

    def __contains__(self, day):
        with self._lock:
            self._prune()
            return day in self._entries

    def __len__(self):
        with self._lock:
            self._prune()
            return len(self._entries)

    def add(self, day):
        """Mark day as announced. Re-adding keeps the original timestamp."""
        with self._lock:
            self._prune()
            self._entries.setdefault(day, self._clock())

    def snapshot(self):
        """Frozen copy of the dates currently in the set."""
        with self._lock:
            self._prune()
            return frozenset(self._entries)

    def clear(self):
        with self._lock:
            self._entries.clear()


def available_pairs(snapshot):
    """All (refuge, date, status) entries that are not full."""
    pairs = []
    for refuge_name, dates in snapshot.items():
        for day, status in dates.items():
            if status != FULL:
                pairs.append(AvailablePair(refuge_name, day, status))
    return pairs


def _parse_bound(value, query, name):
    try:
        return parse_iso_date(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name} {value!r} on query {query.id or query.chat_id}")
        return None


def query_matches(query, refuge_name, day):
    """
    Check whether a saved query selects a refuge/date pair.

    The refuge must match (or the query uses "*"), and the date must fall in
    the inclusive [date_from, date_to] window. Either bound may be empty.

    Args:
        query (Query): Saved filter
        refuge_name (str): Refuge of the pair
        day (str): YYYY-MM-DD date of the pair

    Returns:
        bool: True if the pair matches
    """
    if query.refuge not in ('', WILDCARD) and query.refuge != refuge_name:
        return False

    date_from = _parse_bound(query.date_from, query, 'date_from')
    date_to = _parse_bound(query.date_to, query, 'date_to')
    if date_from is None and date_to is None:
        return True

    target = parse_iso_date(day)
    if date_from is not None and target < date_from:
        return False
    if date_to is not None and target > date_to:
        return False
    return True


def _refuge_order(refuge_name):
    names = [refuge.name for refuge in REFUGES]
    return names.index(refuge_name) if refuge_name in names else len(names)


def format_availability_message(pairs, lang=DEFAULT_LANGUAGE):
    """
    Format new availability as a Telegram HTML message.

    Pairs are grouped by refuge (in the fixed refuge order) and sorted by
    date inside each group.
    """
    grouped = {}
    for pair in pairs:
        grouped.setdefault(pair.refuge, []).append(pair)

    places = translate(lang, 'places')
    lines = [f"<b>🏔 {translate(lang, 'new_availability')}</b>"]
    for refuge_name in sorted(grouped, key=lambda name: (_refuge_order(name), name)):
        lines.append('')
        lines.append(f"<b>{html.escape(refuge_name)}</b>")
        for pair in sorted(grouped[refuge_name], key=lambda p: p.date):
            lines.append(f"📅 {pair.date}: {html.escape(pair.status)} {places}")
    return '\n'.join(lines)


class NotificationEngine:
    """
    Announces newly available dates.

    Args:
        notifier (TelegramNotifier): Outbound messaging
        store (SubscriberStore, optional): Source of subscribers and queries
        notified (NotifiedDateSet, optional): Shared announced-date set
        subscriber_filtering (bool): Send each subscriber only what their
            queries select; otherwise one broadcast per cycle
        dedup_scope (str): "global" - one set shared by all subscribers, the
            first subscriber to match a date claims it; "subscriber" - one set
            per chat so overlapping filters do not interfere
        ttl_seconds (int, optional): TTL for sets created by the engine
    """

    def __init__(self, notifier, store=None, notified=None, subscriber_filtering=True,
                 dedup_scope='global', ttl_seconds=None):
        if dedup_scope not in ('global', 'subscriber'):
            raise ValueError(f"Unknown dedup scope: {dedup_scope}")
        self.notifier = notifier
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.notified = notified if notified is not None else NotifiedDateSet(ttl_seconds)
        self.subscriber_filtering = subscriber_filtering
        self.dedup_scope = dedup_scope
        self._subscriber_sets = {}

    def process(self, snapshot, warn_on_empty=True):
        """
        Run one cycle of change detection and notification.

        Args:
            snapshot (dict): {refuge name: {date: status}}
            warn_on_empty (bool): Send the scrape warning when no dates came back

        Returns:
            CycleReport: What happened this cycle
        """
        try:
            total = count_dates(snapshot)
        except ParseAnomaly as e:
            logger.warning(f"⚠️ {e}")
            if warn_on_empty:
                self.notifier.notify_operators(SCRAPE_WARNING)
            return CycleReport(0, [], 0, warn_on_empty)

        candidates = available_pairs(snapshot)
        subscribers = self._active_subscribers()

        if subscribers:
            sent, new_pairs = self._notify_subscribers(candidates, subscribers)
        else:
            sent, new_pairs = self._notify_all(candidates)

        return CycleReport(total, new_pairs, sent, False)

    def _active_subscribers(self):
        if not self.subscriber_filtering or self.store is None:
            return []
        try:
            return self.store.list_active()
        except StoreError as e:
            logger.error(f"Could not list subscribers, falling back to broadcast: {e}")
            return []

    def _notify_all(self, candidates):
        already = self.notified.snapshot()
        new_pairs = [pair for pair in candidates if pair.date not in already]
        if not new_pairs:
            logger.info("No new available dates")
            return 0, []

        for pair in new_pairs:
            self.notified.add(pair.date)

        logger.info(f"🎉 {len(new_pairs)} new available dates, broadcasting")
        sent = self.notifier.broadcast(format_availability_message(new_pairs))
        return sent, new_pairs

    def _notified_for(self, chat_id):
        if self.dedup_scope == 'global':
            return self.notified
        if chat_id not in self._subscriber_sets:
            self._subscriber_sets[chat_id] = NotifiedDateSet(self.ttl_seconds)
        return self._subscriber_sets[chat_id]

    def _notify_subscribers(self, candidates, subscribers):
        sent = 0
        announced = []

        for subscriber in subscribers:
            try:
                queries = self.store.list_queries_for(subscriber.chat_id)
            except StoreError as e:
                logger.error(f"Could not load queries for {subscriber.chat_id}: {e}")
                continue
            if not queries:
                queries = [Query(chat_id=subscriber.chat_id, refuge=WILDCARD)]

            notified = self._notified_for(subscriber.chat_id)
            already = notified.snapshot()
            matched = [
                pair for pair in candidates
                if pair.date not in already
                and any(query_matches(query, pair.refuge, pair.date) for query in queries)
            ]
            if not matched:
                continue

            for pair in matched:
                notified.add(pair.date)
            announced.extend(pair for pair in matched if pair not in announced)

            message = format_availability_message(matched, subscriber.language or DEFAULT_LANGUAGE)
            if self.notifier.send_to(subscriber.chat_id, message):
                sent += 1

        if announced:
            logger.info(f"🎉 Announced {len(announced)} new dates to {sent} subscribers")
        else:
            logger.info("No new available dates for any subscriber")
        return sent, announced
