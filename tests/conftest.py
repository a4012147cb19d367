"""
Shared fixtures: in-memory stand-ins for Telegram and the booking site.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from config.settings import load_settings
from store import JsonFileStore, SqlStore


class FakeNotifier:
    """Records everything instead of calling Telegram."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.broadcasts = []
        self.operator_alerts = []
        self.fail_for = set(fail_for)

    def send_to(self, chat_id, text):
        if chat_id in self.fail_for:
            return False
        self.sent.append((chat_id, text))
        return True

    def broadcast(self, text):
        self.broadcasts.append(text)
        return 1

    def notify_operators(self, text):
        self.operator_alerts.append(text)
        return 1

    def resolve_display_name(self, chat_id):
        return f"user-{chat_id}"


class FakeResponse:
    def __init__(self, status_code=200, text='', payload=None):
        self.status_code = status_code
        self.text = text
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """requests.Session double returning queued responses (or raising queued exceptions)."""

    def __init__(self, responses=()):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        result = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(result, Exception):
            raise result
        return result

    def post(self, url, **kwargs):
        return self._next('POST', url, kwargs)

    def get(self, url, **kwargs):
        return self._next('GET', url, kwargs)


class FakeFetcher:
    """RefugeFetcher double: pages keyed by structure id, or an exception to raise."""

    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def fetch(self, refuge, anchor):
        self.calls.append((refuge.name, anchor))
        page = self.pages[refuge.structure_id]
        if isinstance(page, list):
            page = page.pop(0) if len(page) > 1 else page[0]
        if isinstance(page, Exception):
            raise page
        return page


AVAILABLE_PAGE = """
<div class="calendar">
    <div class="day dispo">08/03<span>2</span></div>
    <div class="day dispo">08/08<span>1</span></div>
    <div class="day complet">08/10</div>
</div>
"""

FULL_PAGE = """
<div class="calendar">
    <div class="day complet"><span class="date">08/03</span></div>
    <div class="day complet"><span class="date">08/04</span></div>
</div>
"""


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def anchor():
    return date(2025, 8, 1)


@pytest.fixture(params=['json', 'sql'])
def store(request, tmp_path):
    """Each store test runs against both backends."""
    if request.param == 'json':
        backend = JsonFileStore(tmp_path / 'subscribers.json', prefix='test_')
    else:
        backend = SqlStore(f"sqlite:///{tmp_path / 'subscribers.db'}", prefix='test_')
    yield backend
    backend.close()


@pytest.fixture
def json_store(tmp_path):
    return JsonFileStore(tmp_path / 'subscribers.json')


@pytest.fixture
def base_env():
    return {
        'PHPSESSID': 'abc123',
        'TELEGRAM_BOT_TOKEN': 'bot-token',
        'GA_MEASUREMENT_ID': 'G-TEST',
        'MONITOR_MONTHS': '2025-08',
    }


@pytest.fixture
def settings(base_env, tmp_path):
    env = dict(base_env, STORE_PATH=str(tmp_path / 'subscribers.json'), ADMIN_CHAT_ID='999')
    return load_settings(env)
