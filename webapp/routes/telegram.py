"""
Telegram Webhook Commands

Handles inbound bot updates: registers the sender and answers the
/start, /id, /stop and /subscribers commands.
"""

import html
import logging
from dataclasses import replace

from models.subscriber import Subscriber
from monitoring.errors import StoreError, NotFound
from utils.i18n import normalize_language, translate, DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)


def parse_command(text):
    """Return the bot command in a message ("/start@MyBot now" -> "/start"), or None."""
    if not text or not text.startswith('/'):
        return None
    return text.split()[0].split('@')[0].lower()


def register_sender(store, chat_id, sender, command):
    """
    Upsert the chat that sent a message.

    Existing subscribers keep their language and active flag, except that
    /start reactivates them. New senders are created active.

    Returns:
        Subscriber: The stored subscriber
    """
    language = normalize_language(sender.get('language_code')) or DEFAULT_LANGUAGE
    profile = {
        'username': sender.get('username', ''),
        'first_name': sender.get('first_name', ''),
        'last_name': sender.get('last_name', ''),
    }

    try:
        existing = store.get(chat_id)
    except NotFound:
        return store.upsert(Subscriber(chat_id=chat_id, language=language, **profile))

    is_active = True if command == '/start' else existing.is_active
    return store.upsert(replace(existing, is_active=is_active, **profile))


def list_subscribers_message(store, notifier):
    subscribers = store.list_active()
    if not subscribers:
        return "No active subscribers."

    lines = [f"<b>Active subscribers: {len(subscribers)}</b>"]
    for subscriber in subscribers:
        name = notifier.resolve_display_name(subscriber.chat_id)
        lines.append(f"• {html.escape(name)} (<code>{html.escape(subscriber.chat_id)}</code>, {subscriber.language})")
    return '\n'.join(lines)


def handle_update(update, store, notifier, admin_chat_id=None):
    """
    Process one Telegram update.

    Args:
        update (dict): Decoded update payload
        store (SubscriberStore, optional): Subscriber store
        notifier (TelegramNotifier): Used for replies
        admin_chat_id (str, optional): Chat allowed to run /subscribers

    Returns:
        str or None: Command that was handled
    """
    message = update.get('message') or {}
    chat = message.get('chat') or {}
    if 'id' not in chat:
        return None

    chat_id = str(chat['id'])
    sender = message.get('from') or {}
    command = parse_command(message.get('text', ''))
    language = normalize_language(sender.get('language_code')) or DEFAULT_LANGUAGE

    if store is not None and command != '/stop':
        try:
            language = register_sender(store, chat_id, sender, command).language
        except StoreError as e:
            logger.error(f"Could not register chat {chat_id}: {e}")

    if command == '/start':
        notifier.send_to(chat_id, translate(language, 'greeting'))
    elif command == '/id':
        notifier.send_to(chat_id, f"{translate(language, 'your_chat_id')} <code>{chat_id}</code>")
    elif command == '/stop':
        if store is not None:
            try:
                store.deactivate(chat_id)
            except NotFound:
                logger.info(f"/stop from unknown chat {chat_id}")
            except StoreError as e:
                logger.error(f"Could not unsubscribe chat {chat_id}: {e}")
        notifier.send_to(chat_id, translate(language, 'unsubscribed'))
    elif command == '/subscribers':
        if not admin_chat_id or chat_id != str(admin_chat_id):
            logger.warning(f"Ignoring /subscribers from non-admin chat {chat_id}")
            return None
        if store is None:
            notifier.send_to(chat_id, "No subscriber store configured.")
        else:
            try:
                notifier.send_to(chat_id, list_subscribers_message(store, notifier))
            except StoreError as e:
                logger.error(f"Could not list subscribers: {e}")
                notifier.send_to(chat_id, "❌ Could not load subscribers.")
    else:
        return None

    logger.info(f"Handled {command} from {chat_id}")
    return command
