"""
Web Application Tests

Status page, JSON endpoints, subscription form and Telegram webhook,
exercised through the Flask test client.
"""

from datetime import datetime

import pytest
import pytz

from models.refuge import FULL
from models.subscriber import Subscriber
from monitoring.errors import StoreError
from webapp.app import create_app, WEBHOOK_SECRET_HEADER
from webapp.state import StatusState

CHECKED_AT = pytz.timezone('Europe/Paris').localize(datetime(2025, 8, 1, 10, 30))


@pytest.fixture
def state():
    state = StatusState()
    state.write({
        'Tête Rousse': {'2025-08-03': '2', '2025-08-10': FULL},
        'du Goûter': {},
    }, CHECKED_AT)
    return state


@pytest.fixture
def client(state, json_store, notifier, settings):
    app = create_app(state, store=json_store, notifier=notifier, settings=settings)
    app.config['TESTING'] = True
    return app.test_client()


def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_data(as_text=True) == 'OK'


def test_status(client):
    data = client.get('/status').get_json()

    assert data == {'status': 'ok', 'refuges': 2, 'last_check': CHECKED_AT.isoformat()}


def test_status_before_first_check(json_store):
    client = create_app(StatusState(), store=json_store).test_client()

    assert client.get('/status').get_json()['last_check'] is None


def test_home_renders_snapshot(client):
    page = client.get('/').get_data(as_text=True)

    assert 'Tête Rousse' in page
    assert '2025-08-03' in page
    assert '2025-08-01 10:30:00' in page
    assert 'G-TEST' in page
    assert 'action="/subscribe"' in page


def test_home_language_from_query_sets_cookie(client):
    response = client.get('/?lang=fr')

    assert 'lang="fr"' in response.get_data(as_text=True)
    assert 'lang=fr' in response.headers.get('Set-Cookie', '')


def test_home_language_from_header(client):
    page = client.get('/', headers={'Accept-Language': 'de-CH,de;q=0.9'}).get_data(as_text=True)

    assert 'lang="de"' in page


def test_home_language_honours_quality_values(client):
    page = client.get('/', headers={'Accept-Language': 'fr;q=0.1, de;q=0.9'}).get_data(as_text=True)

    assert 'lang="de"' in page


def test_home_unsupported_language_falls_back_to_english(client):
    page = client.get('/', headers={'Accept-Language': 'ja'}).get_data(as_text=True)

    assert 'lang="en"' in page


def test_subscribe_saves_and_confirms(client, json_store, notifier):
    response = client.post('/subscribe', data={
        'chat_id': '12345',
        'language': 'it',
        'refuge': 'du Goûter',
        'date_from': '2025-08-01',
        'date_to': '2025-08-15',
    })

    assert response.status_code == 303
    assert response.headers['Location'].endswith('/#subscribe')
    assert json_store.get('12345').language == 'it'
    queries = json_store.list_queries_for('12345')
    assert [(q.refuge, q.date_from, q.date_to) for q in queries] == [('du Goûter', '2025-08-01', '2025-08-15')]
    assert notifier.sent[0][0] == '12345'


def test_subscribe_accepts_group_chat(client, json_store):
    response = client.post('/subscribe', data={'chat_id': '-100200300', 'refuge': '*'})

    assert response.status_code == 303
    assert json_store.get('-100200300').is_active


@pytest.mark.parametrize('form', [
    {'chat_id': ''},
    {'chat_id': 'abc'},
    {'chat_id': '12345', 'language': 'xx'},
    {'chat_id': '12345', 'refuge': 'Refuge des Cosmiques'},
    {'chat_id': '12345', 'date_from': '01/08/2025'},
    {'chat_id': '12345', 'date_from': '2025-08-15', 'date_to': '2025-08-01'},
])
def test_subscribe_rejects_bad_input(client, json_store, notifier, form):
    response = client.post('/subscribe', data=form)

    assert response.status_code == 400
    assert response.get_data(as_text=True)
    assert json_store.list_active() == []
    assert notifier.sent == []


def test_subscribe_store_failure_is_500(state, settings, notifier):
    class BrokenStore:
        def get(self, chat_id):
            raise StoreError("database is down")

        def upsert(self, subscriber):
            raise StoreError("database is down")

    client = create_app(state, store=BrokenStore(), notifier=notifier, settings=settings).test_client()

    response = client.post('/subscribe', data={'chat_id': '12345'})

    assert response.status_code == 500


def test_subscribe_get_redirects(client):
    response = client.get('/subscribe')

    assert response.status_code == 303
    assert response.headers['Location'].endswith('/#subscribe')


def _update(chat_id, text, **sender):
    return {'update_id': 1, 'message': {'chat': {'id': chat_id}, 'from': sender, 'text': text}}


def test_webhook_start_registers_sender(client, json_store, notifier):
    response = client.post('/telegram/webhook', json=_update(555, '/start', username='climber', language_code='fr'))

    assert response.status_code == 200
    subscriber = json_store.get('555')
    assert subscriber.username == 'climber'
    assert subscriber.language == 'fr'
    assert notifier.sent[0][0] == '555'


def test_webhook_id_replies_with_chat_id(client, notifier):
    client.post('/telegram/webhook', json=_update(555, '/id'))

    assert '<code>555</code>' in notifier.sent[0][1]


def test_webhook_stop_deactivates(client, json_store):
    json_store.upsert(Subscriber(chat_id='555'))

    client.post('/telegram/webhook', json=_update(555, '/stop'))

    assert json_store.list_active() == []


def test_webhook_subscribers_is_admin_only(client, json_store, notifier):
    json_store.upsert(Subscriber(chat_id='555'))

    client.post('/telegram/webhook', json=_update(555, '/subscribers'))
    assert all('Active subscribers' not in text for _, text in notifier.sent)

    client.post('/telegram/webhook', json=_update(999, '/subscribers'))
    chat_id, text = notifier.sent[-1]
    assert chat_id == '999'
    assert 'user-555' in text


def test_webhook_subscribers_escapes_names(client, json_store, notifier):
    json_store.upsert(Subscriber(chat_id='555'))
    notifier.resolve_display_name = lambda chat_id: 'Tom & Jerry <3'

    client.post('/telegram/webhook', json=_update(999, '/subscribers'))

    text = notifier.sent[-1][1]
    assert 'Tom &amp; Jerry &lt;3' in text
    assert '<3' not in text


def test_webhook_malformed_json(client):
    response = client.post('/telegram/webhook', data='{not json', content_type='application/json')

    assert response.status_code == 400


def test_webhook_without_message_is_ignored(client, notifier):
    response = client.post('/telegram/webhook', json={'update_id': 7})

    assert response.status_code == 200
    assert notifier.sent == []


def test_webhook_secret_is_checked(state, json_store, notifier, settings):
    settings.webhook_secret = 's3cret'
    client = create_app(state, store=json_store, notifier=notifier, settings=settings).test_client()

    assert client.post('/telegram/webhook', json=_update(1, '/id')).status_code == 403
    response = client.post('/telegram/webhook', json=_update(1, '/id'), headers={WEBHOOK_SECRET_HEADER: 's3cret'})
    assert response.status_code == 200
