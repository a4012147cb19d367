"""
Subscription Service

Validates the web subscription form and saves subscribers with their
queries.
"""

import logging
import re
from dataclasses import replace

from models.refuge import REFUGES
from models.subscriber import Subscriber, Query
from monitoring.dedup import WILDCARD
from monitoring.errors import ValidationError, NotFound
from utils.date_converter import parse_iso_date
from utils.i18n import SUPPORTED_LANGUAGES, DEFAULT_LANGUAGE, translate

logger = logging.getLogger(__name__)

# Group chats have negative IDs
CHAT_ID_PATTERN = re.compile(r'^-?\d+$')

ALLOWED_REFUGES = (WILDCARD,) + tuple(refuge.name for refuge in REFUGES)


def validate_subscription(form):
    """
    Validate subscription form fields.

    Args:
        form (Mapping): chat_id, language, refuge, date_from, date_to

    Returns:
        tuple: (Subscriber, Query)

    Raises:
        ValidationError: On the first invalid field
    """
    chat_id = (form.get('chat_id') or '').strip()
    language = (form.get('language') or DEFAULT_LANGUAGE).strip().lower()
    refuge = (form.get('refuge') or WILDCARD).strip()
    date_from = (form.get('date_from') or '').strip()
    date_to = (form.get('date_to') or '').strip()

    if not chat_id:
        raise ValidationError('chat_id', 'chat_id required')
    if not CHAT_ID_PATTERN.match(chat_id):
        raise ValidationError('chat_id', f"chat_id must be numeric, got {chat_id!r}")

    if language not in SUPPORTED_LANGUAGES:
        raise ValidationError('language', f"Unsupported language {language!r}")

    if refuge not in ALLOWED_REFUGES:
        raise ValidationError('refuge', f"Unknown refuge {refuge!r}")

    bounds = {}
    for field, value in (('date_from', date_from), ('date_to', date_to)):
        try:
            bounds[field] = parse_iso_date(value)
        except ValueError:
            raise ValidationError(field, f"Invalid date format: {value}. Expected YYYY-MM-DD")

    if bounds['date_from'] and bounds['date_to'] and bounds['date_from'] > bounds['date_to']:
        raise ValidationError('date_to', 'date_to must not be before date_from')

    subscriber = Subscriber(chat_id=chat_id, language=language, is_active=True)
    query = Query(chat_id=chat_id, refuge=refuge, date_from=date_from, date_to=date_to)
    return subscriber, query


def save_subscription(store, subscriber, query, notifier=None):
    """
    Upsert the subscriber, save the query and confirm over Telegram.

    Profile fields already known from Telegram are kept.

    Args:
        store (SubscriberStore): Target store
        subscriber (Subscriber): Validated subscriber
        query (Query): Validated query
        notifier (TelegramNotifier, optional): Sends the confirmation

    Returns:
        str: ID of the saved query

    Raises:
        StoreError: If the store cannot be written
    """
    try:
        existing = store.get(subscriber.chat_id)
        subscriber = replace(
            subscriber,
            username=existing.username,
            first_name=existing.first_name,
            last_name=existing.last_name,
            plan=existing.plan,
        )
    except NotFound:
        pass

    store.upsert(subscriber)
    query_id = store.add_query(query)
    logger.info(f"Subscription {query_id} saved for {subscriber.chat_id} ({query.refuge}, "
                f"{query.date_from or '-'} → {query.date_to or '-'})")

    if notifier is not None:
        notifier.send_to(subscriber.chat_id, translate(subscriber.language, 'subscription_saved'))
    return query_id
