"""
Configuration Management

Loads application settings from environment variables (and a .env file
when present). Missing required values raise ConfigMissing, which the
entry point treats as fatal.
"""

import os
from collections import namedtuple
from datetime import datetime

import pytz
from dateutil.relativedelta import relativedelta
from dotenv import load_dotenv

from monitoring.errors import ConfigMissing

REQUIRED_KEYS = ('PHPSESSID', 'TELEGRAM_BOT_TOKEN', 'GA_MEASUREMENT_ID')

DEFAULT_TIMEZONE = 'Europe/Paris'
DEFAULT_STORE_PATH = 'data/subscribers.json'

StoreConfig = namedtuple('StoreConfig', ['store_backend', 'database_url', 'store_path', 'table_prefix'])


class Settings:
    """Resolved configuration for one process."""

    def __init__(self, **values):
        self.session_id = values['session_id']
        self.bot_token = values['bot_token']
        self.measurement_id = values['measurement_id']
        self.chat_ids = values.get('chat_ids', [])
        self.admin_chat_id = values.get('admin_chat_id')
        self.database_url = values.get('database_url')
        self.store_backend = values.get('store_backend', 'json')
        self.store_path = values.get('store_path', DEFAULT_STORE_PATH)
        self.table_prefix = values.get('table_prefix', '')
        self.port = values.get('port', 8080)
        self.check_interval_minutes = values.get('check_interval_minutes', 1)
        self.anchors = values.get('anchors', [])
        self.pax = values.get('pax', '1')
        self.waiting_room_max_attempts = values.get('waiting_room_max_attempts', 4)
        self.waiting_room_base_delay = values.get('waiting_room_base_delay', 15)
        self.notified_ttl_hours = values.get('notified_ttl_hours')
        self.subscriber_filtering = values.get('subscriber_filtering', True)
        self.dedup_scope = values.get('dedup_scope', 'global')
        self.webhook_secret = values.get('webhook_secret')
        self.keepalive_url = values.get('keepalive_url')
        self.timezone = values.get('timezone', DEFAULT_TIMEZONE)

    def __repr__(self):
        return (f"Settings(store_backend={self.store_backend!r}, port={self.port}, "
                f"anchors={[a.isoformat() for a in self.anchors]})")


def _get_int(env, key, default, minimum=None):
    raw = env.get(key, '').strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigMissing(key, f"{key} must be an integer, got {raw!r}")
    if minimum is not None and value < minimum:
        raise ConfigMissing(key, f"{key} must be at least {minimum}")
    return value


def _get_bool(env, key, default):
    raw = env.get(key, '').strip().lower()
    if not raw:
        return default
    return raw in ('1', 'true', 'yes', 'on')


def split_csv(value):
    """
    Split a comma-separated setting into a list.

    Args:
        value (str): e.g. "123, 456"

    Returns:
        list: Non-empty, stripped items
    """
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def current_month_start(timezone=DEFAULT_TIMEZONE):
    """First day of the current month in the monitoring time zone."""
    now = datetime.now(pytz.timezone(timezone))
    return now.date().replace(day=1)


def resolve_anchors(months, months_ahead=0, timezone=DEFAULT_TIMEZONE):
    """
    Build the list of month anchors to poll.

    Args:
        months (str): Comma-separated YYYY-MM values, may be empty
        months_ahead (int): Extra months after the current one when months is empty
        timezone (str): Time zone used to determine the current month

    Returns:
        list: date objects pinned to the first of each month
    """
    anchors = []
    for item in split_csv(months):
        try:
            anchors.append(datetime.strptime(item, '%Y-%m').date())
        except ValueError:
            raise ConfigMissing('MONITOR_MONTHS', f"Invalid month {item!r}. Expected YYYY-MM")
    if anchors:
        return sorted(set(anchors))

    start = current_month_start(timezone)
    return [start + relativedelta(months=offset) for offset in range(months_ahead + 1)]


def load_store_config(environ=None):
    """
    Resolve which subscriber store to open.

    DATABASE_URL selects the SQL backend unless STORE_BACKEND says
    otherwise; without either the embedded JSON file is used.

    Args:
        environ (dict, optional): Mapping to read instead of os.environ

    Returns:
        StoreConfig: Backend name, database URL, file path and table prefix

    Raises:
        ConfigMissing: If STORE_BACKEND is unknown or 'sql' has no DATABASE_URL
    """
    if environ is None:
        load_dotenv()
        environ = os.environ
    env = environ

    database_url = env.get('DATABASE_URL', '').strip() or None
    store_backend = env.get('STORE_BACKEND', '').strip().lower()
    if not store_backend:
        store_backend = 'sql' if database_url else 'json'
    if store_backend not in ('json', 'sql'):
        raise ConfigMissing('STORE_BACKEND', f"STORE_BACKEND must be 'json' or 'sql', got {store_backend!r}")
    if store_backend == 'sql' and not database_url:
        raise ConfigMissing('DATABASE_URL', "DATABASE_URL is required when STORE_BACKEND is 'sql'")

    return StoreConfig(
        store_backend=store_backend,
        database_url=database_url,
        store_path=env.get('STORE_PATH', '').strip() or DEFAULT_STORE_PATH,
        table_prefix=env.get('DB_TABLE_PREFIX', '').strip(),
    )


def load_settings(environ=None):
    """
    Load settings from the environment.

    Args:
        environ (dict, optional): Mapping to read instead of os.environ

    Returns:
        Settings: Resolved configuration

    Raises:
        ConfigMissing: If a required key is absent or a value is malformed
    """
    if environ is None:
        load_dotenv()
        environ = os.environ
    env = environ

    for key in REQUIRED_KEYS:
        if not env.get(key, '').strip():
            raise ConfigMissing(key)

    timezone = env.get('TIMEZONE', '').strip() or DEFAULT_TIMEZONE
    if timezone not in pytz.all_timezones_set:
        raise ConfigMissing('TIMEZONE', f"Unknown time zone {timezone!r}")

    store = load_store_config(env)

    dedup_scope = env.get('DEDUP_SCOPE', '').strip().lower() or 'global'
    if dedup_scope not in ('global', 'subscriber'):
        raise ConfigMissing('DEDUP_SCOPE', f"DEDUP_SCOPE must be 'global' or 'subscriber', got {dedup_scope!r}")

    ttl_hours = _get_int(env, 'NOTIFIED_TTL_HOURS', None, minimum=1)

    return Settings(
        session_id=env['PHPSESSID'].strip(),
        bot_token=env['TELEGRAM_BOT_TOKEN'].strip(),
        measurement_id=env['GA_MEASUREMENT_ID'].strip(),
        chat_ids=split_csv(env.get('TELEGRAM_CHAT_IDS', '')),
        admin_chat_id=env.get('ADMIN_CHAT_ID', '').strip() or None,
        database_url=store.database_url,
        store_backend=store.store_backend,
        store_path=store.store_path,
        table_prefix=store.table_prefix,
        port=_get_int(env, 'PORT', 8080, minimum=1),
        check_interval_minutes=_get_int(env, 'CHECK_INTERVAL_MINUTES', 1, minimum=1),
        anchors=resolve_anchors(
            env.get('MONITOR_MONTHS', ''),
            _get_int(env, 'MONITOR_MONTHS_AHEAD', 0, minimum=0),
            timezone,
        ),
        pax=str(_get_int(env, 'PAX', 1, minimum=1)),
        waiting_room_max_attempts=_get_int(env, 'WAITING_ROOM_MAX_ATTEMPTS', 4, minimum=1),
        waiting_room_base_delay=_get_int(env, 'WAITING_ROOM_BASE_DELAY', 15, minimum=0),
        notified_ttl_hours=ttl_hours,
        subscriber_filtering=_get_bool(env, 'SUBSCRIBER_FILTERING', True),
        dedup_scope=dedup_scope,
        webhook_secret=env.get('TELEGRAM_WEBHOOK_SECRET', '').strip() or None,
        keepalive_url=env.get('KEEPALIVE_URL', '').strip().rstrip('/') or None,
        timezone=timezone,
    )
