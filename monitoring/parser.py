"""
Availability Parser

Turns the booking calendar HTML into a date -> status mapping.
Available days carry their free place count, full days carry "Full".
The site only prints MM/DD tokens, so the month anchor supplies the year.
"""

import logging
import time
from datetime import date

from bs4 import BeautifulSoup

from models.refuge import FULL
from monitoring.errors import WaitingRoomExhausted, ParseAnomaly

logger = logging.getLogger(__name__)

WAITING_ROOM_MARKER = "Your Rank in the waiting room"


def is_waiting_room(content):
    """Return True if the upstream put the request in its waiting room."""
    return WAITING_ROOM_MARKER in content


def resolve_date(token, anchor):
    """
    Convert an MM/DD token to YYYY-MM-DD using the anchor year.

    A month more than six months before the anchor month belongs to the
    following year (a December anchor can list early January days). A month
    more than six months after it belongs to the previous year (a January
    anchor can list trailing December days).

    Args:
        token (str): Day token such as "08/03"
        anchor (date): Month anchor of the request

    Returns:
        str or None: ISO date, or None if the token is not a valid day
    """
    parts = token.strip().split('/')
    if len(parts) != 2:
        return None
    try:
        month, day = int(parts[0]), int(parts[1])
        year = anchor.year
        if anchor.month - month > 6:
            year += 1
        elif month - anchor.month > 6:
            year -= 1
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _own_text(element):
    """Text directly inside element, ignoring child tags."""
    for text in element.find_all(string=True, recursive=False):
        if text.strip():
            return text.strip()
    return ''


def _day_token(element):
    date_span = element.select_one('span.date')
    if date_span is not None:
        return date_span.get_text(strip=True)
    return _own_text(element)


def _place_count(element):
    place_span = element.select_one('span.place')
    if place_span is None:
        place_span = element.find('span', class_=lambda c: c != 'date')
    if place_span is None:
        return ''
    return place_span.get_text(strip=True)


def extract_availability(content, anchor, refuge_name=''):
    """
    Parse HTML content and extract available and full dates.

    Args:
        content (str): Raw HTML from the booking system
        anchor (date): Month anchor used for year inference
        refuge_name (str): Only used for logging

    Returns:
        dict: {"YYYY-MM-DD": "<places>" | "Full"}, possibly empty
    """
    soup = BeautifulSoup(content, "html.parser")
    dates = {}

    for element in soup.select('.day.dispo'):
        token = _day_token(element)
        places = _place_count(element)
        if not token or not places:
            continue
        formatted = resolve_date(token, anchor)
        if formatted is None:
            logger.warning(f"{refuge_name} - Skipping invalid day token {token!r}")
            continue
        dates[formatted] = places
        logger.debug(f"{refuge_name} - Date {formatted}: {places} places available")

    for element in soup.select('.day.complet'):
        token = _day_token(element) or element.get_text(strip=True)
        if not token:
            continue
        formatted = resolve_date(token, anchor)
        if formatted is None:
            logger.warning(f"{refuge_name} - Skipping invalid day token {token!r}")
            continue
        dates[formatted] = FULL

    return dates


def fetch_availability(fetcher, refuge, anchor, max_attempts=4, base_delay=15, sleep=time.sleep):
    """
    Fetch and parse one refuge page, backing off while in the waiting room.

    The page is fetched again after each delay; delays double every attempt
    (base_delay, 2 * base_delay, ...).

    Args:
        fetcher (RefugeFetcher): Fetcher to use
        refuge (Refuge): Refuge to check
        anchor (date): Month anchor
        max_attempts (int): Total fetches allowed
        base_delay (float): First delay in seconds
        sleep (callable): Delay function, injectable so shutdown can cut it short

    Returns:
        dict: Date -> status mapping for the refuge

    Raises:
        WaitingRoomExhausted: If every attempt landed in the waiting room
        TransportError, UpstreamError, ReauthRequired: From the fetcher
    """
    for attempt in range(max_attempts):
        content = fetcher.fetch(refuge, anchor)
        if not is_waiting_room(content):
            return extract_availability(content, anchor, refuge.name)

        if attempt + 1 < max_attempts:
            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"{refuge.name} is in the waiting room (attempt {attempt + 1}/{max_attempts}), "
                f"retrying in {delay} seconds"
            )
            sleep(delay)

    raise WaitingRoomExhausted(refuge.name, max_attempts)


def summarize_availability(snapshot):
    """
    Summarise free places across all refuges and dates.

    Args:
        snapshot (dict): {refuge name: {date: status}}

    Returns:
        tuple: (has_availability, message)
    """
    available = []
    total_places = 0

    for refuge_name, dates in snapshot.items():
        for day, status in sorted(dates.items()):
            if status == FULL:
                continue
            try:
                places = int(status)
            except ValueError:
                logger.warning(f"Failed to parse places for {refuge_name} on {day}: {status!r}")
                continue
            total_places += places
            available.append(f"{refuge_name} on {day} has {places} places")

    if available:
        return True, f"Total {total_places} places available across all dates: {', '.join(available)}"
    return False, "No availability found for any date"


def count_dates(snapshot):
    """
    Count the dates in a snapshot.

    Args:
        snapshot (dict): {refuge name: {date: status}}

    Returns:
        int: Total number of dates across refuges

    Raises:
        ParseAnomaly: If no refuge returned a single date
    """
    total = sum(len(dates) for dates in snapshot.values())
    if total == 0:
        raise ParseAnomaly("No dates found for any refuge - possible scrape failure")
    return total
