"""
Configuration Tests
"""

from datetime import date

import pytest

from config.settings import load_settings, load_store_config, resolve_anchors, split_csv, current_month_start
from monitoring.errors import ConfigMissing


def test_defaults(base_env):
    settings = load_settings(base_env)

    assert settings.session_id == 'abc123'
    assert settings.store_backend == 'json'
    assert settings.port == 8080
    assert settings.check_interval_minutes == 1
    assert settings.pax == '1'
    assert settings.anchors == [date(2025, 8, 1)]
    assert settings.notified_ttl_hours is None
    assert settings.subscriber_filtering is True
    assert settings.dedup_scope == 'global'
    assert settings.timezone == 'Europe/Paris'


@pytest.mark.parametrize('key', ['PHPSESSID', 'TELEGRAM_BOT_TOKEN', 'GA_MEASUREMENT_ID'])
def test_required_keys(base_env, key):
    env = dict(base_env)
    env[key] = '  '

    with pytest.raises(ConfigMissing) as excinfo:
        load_settings(env)

    assert excinfo.value.key == key


def test_database_url_selects_sql(base_env):
    settings = load_settings(dict(base_env, DATABASE_URL='postgres://u:p@db/refuges'))

    assert settings.store_backend == 'sql'


def test_sql_backend_needs_database_url(base_env):
    with pytest.raises(ConfigMissing) as excinfo:
        load_settings(dict(base_env, STORE_BACKEND='sql'))

    assert excinfo.value.key == 'DATABASE_URL'


@pytest.mark.parametrize('key, value', [
    ('PORT', 'eighty'),
    ('CHECK_INTERVAL_MINUTES', '0'),
    ('STORE_BACKEND', 'redis'),
    ('DEDUP_SCOPE', 'everyone'),
    ('TIMEZONE', 'Mars/Olympus'),
    ('MONITOR_MONTHS', '2025-13'),
])
def test_malformed_values(base_env, key, value):
    with pytest.raises(ConfigMissing) as excinfo:
        load_settings(dict(base_env, **{key: value}))

    assert excinfo.value.key == key


def test_optional_values(base_env):
    settings = load_settings(dict(
        base_env,
        TELEGRAM_CHAT_IDS='1, 2,,3',
        ADMIN_CHAT_ID='1',
        PAX='3',
        NOTIFIED_TTL_HOURS='24',
        SUBSCRIBER_FILTERING='false',
        DEDUP_SCOPE='subscriber',
        KEEPALIVE_URL='https://example.org/',
        MONITOR_MONTHS='2025-09,2025-08,2025-09',
    ))

    assert settings.chat_ids == ['1', '2', '3']
    assert settings.pax == '3'
    assert settings.notified_ttl_hours == 24
    assert settings.subscriber_filtering is False
    assert settings.dedup_scope == 'subscriber'
    assert settings.keepalive_url == 'https://example.org'
    assert settings.anchors == [date(2025, 8, 1), date(2025, 9, 1)]


def test_months_ahead_counts_from_current_month():
    start = current_month_start()
    anchors = resolve_anchors('', months_ahead=2)

    assert anchors[0] == start
    assert len(anchors) == 3
    assert all(anchor.day == 1 for anchor in anchors)


def test_split_csv():
    assert split_csv('') == []
    assert split_csv(' a ,b, ') == ['a', 'b']


def test_store_config_without_the_rest_of_the_settings():
    assert load_store_config({}).store_backend == 'json'

    config = load_store_config({'DATABASE_URL': 'sqlite://', 'DB_TABLE_PREFIX': 'rm_'})
    assert (config.store_backend, config.database_url, config.table_prefix) == ('sql', 'sqlite://', 'rm_')

    assert load_store_config({'DATABASE_URL': 'sqlite://', 'STORE_BACKEND': 'json'}).store_backend == 'json'


def test_store_config_rejects_unknown_backend():
    with pytest.raises(ConfigMissing) as excinfo:
        load_store_config({'STORE_BACKEND': 'redis'})

    assert excinfo.value.key == 'STORE_BACKEND'
