"""
Telegram Service

Handles Telegram notifications and chat lookups through the Bot API.
A failed send is logged and reported as False; it never aborts a fan-out.
"""

import logging

import requests

from monitoring.errors import TransportError, StoreError

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"
DEFAULT_TIMEOUT = 30


def format_user_name(user):
    """
    Build a display name from a Telegram user/chat payload.

    Args:
        user (dict or None): Telegram "from" or getChat result

    Returns:
        str: "@username", "First Last", "First" or "Unknown"
    """
    if not user:
        return "Unknown"
    if user.get('username'):
        return f"@{user['username']}"
    first_name = user.get('first_name', '')
    last_name = user.get('last_name', '')
    if first_name:
        return f"{first_name} {last_name}".strip()
    return "Unknown"


class TelegramNotifier:
    """
    Sends messages through a Telegram bot.

    Args:
        bot_token (str): Bot API token
        chat_ids (list, optional): Configured recipients
        store (SubscriberStore, optional): Subscriber store; its active
            subscribers take precedence over chat_ids for broadcasts
        admin_chat_id (str, optional): Operator chat for alerts and admin commands
        timeout (int): Request timeout in seconds
        session (requests.Session, optional): Session to reuse
    """

    def __init__(self, bot_token, chat_ids=None, store=None, admin_chat_id=None,
                 timeout=DEFAULT_TIMEOUT, session=None):
        self.bot_token = bot_token
        self.chat_ids = list(chat_ids or [])
        self.store = store
        self.admin_chat_id = admin_chat_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call(self, method, data):
        url = f"{TELEGRAM_API}/bot{self.bot_token}/{method}"
        try:
            response = self.session.post(url, data=data, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Telegram {method} failed: {e}") from e
        if response.status_code != 200:
            raise TransportError(f"Telegram {method} failed {response.status_code}: {response.text[:500]}")
        return response

    def send_to(self, chat_id, text):
        """
        Send a message to a single chat.

        Args:
            chat_id (str): Recipient chat ID
            text (str): HTML-formatted message

        Returns:
            bool: True if Telegram accepted the message
        """
        try:
            self._call('sendMessage', {
                'chat_id': chat_id,
                'text': text,
                'parse_mode': 'HTML',
            })
        except TransportError as e:
            logger.error(f"Error sending message to {chat_id}: {e}")
            return False

        logger.info(f"Telegram message sent to {chat_id}")
        return True

    def recipients(self):
        """Active store subscribers if there are any, else the configured chat IDs."""
        if self.store is not None:
            try:
                subscribers = self.store.list_active()
            except StoreError as e:
                logger.error(f"Could not load subscribers, using configured chat IDs: {e}")
                subscribers = []
            if subscribers:
                return [subscriber.chat_id for subscriber in subscribers]
        return list(self.chat_ids)

    def _fan_out(self, chat_ids, text):
        sent = 0
        for chat_id in chat_ids:
            if self.send_to(chat_id, text):
                sent += 1
        logger.info(f"Message delivered to {sent}/{len(chat_ids)} recipients")
        return sent

    def broadcast(self, text):
        """
        Send a message to every recipient.

        Returns:
            int: Number of recipients that received it
        """
        recipients = self.recipients()
        if not recipients:
            logger.warning("No recipients configured, message not sent")
            return 0
        return self._fan_out(recipients, text)

    def notify_operators(self, text):
        """
        Send an operational alert to the admin and configured chats.

        Returns:
            int: Number of operators that received it
        """
        operators = []
        for chat_id in [self.admin_chat_id] + self.chat_ids:
            if chat_id and chat_id not in operators:
                operators.append(chat_id)
        if not operators:
            logger.warning(f"No operator chats configured, alert dropped: {text}")
            return 0
        return self._fan_out(operators, text)

    def resolve_display_name(self, chat_id):
        """
        Look up a readable name for a chat, falling back to the raw ID.

        Args:
            chat_id (str): Chat to look up

        Returns:
            str: Display name or chat_id
        """
        try:
            payload = self._call('getChat', {'chat_id': chat_id}).json()
        except (TransportError, ValueError) as e:
            logger.warning(f"Failed to get user info for {chat_id}: {e}")
            return str(chat_id)

        if not payload.get('ok'):
            return str(chat_id)
        name = format_user_name(payload.get('result'))
        return str(chat_id) if name == "Unknown" else name
