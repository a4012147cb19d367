"""
Refuge Fetcher Tests
"""

import pytest
import requests

from conftest import FakeSession, FakeResponse, AVAILABLE_PAGE
from models.refuge import get_refuge
from monitoring.errors import TransportError, UpstreamError, ReauthRequired
from monitoring.fetcher import RefugeFetcher, BOOKING_URL, needs_reauth


def test_posts_availability_form(anchor):
    session = FakeSession([FakeResponse(200, AVAILABLE_PAGE)])
    fetcher = RefugeFetcher('sess-1', pax=2, session=session)

    content = fetcher.fetch(get_refuge('du Goûter'), anchor)

    assert content == AVAILABLE_PAGE
    method, url, kwargs = session.calls[0]
    assert (method, url) == ('POST', BOOKING_URL)
    assert kwargs['cookies'] == {'PHPSESSID': 'sess-1'}
    assert kwargs['data']['structure'] == 'BK_STRUCTURE:30'
    assert kwargs['data']['date'] == '2025-08-01'
    assert kwargs['data']['pax'] == '2'
    assert kwargs['data']['mode'] == 'FORM_PREBOOK'


def test_network_failure_is_transport_error(anchor):
    session = FakeSession([requests.ConnectionError("connection refused")])
    fetcher = RefugeFetcher('sess-1', session=session)

    with pytest.raises(TransportError):
        fetcher.fetch(get_refuge('Tête Rousse'), anchor)


def test_non_200_is_upstream_error(anchor):
    session = FakeSession([FakeResponse(503, 'unavailable')])
    fetcher = RefugeFetcher('sess-1', session=session)

    with pytest.raises(UpstreamError) as excinfo:
        fetcher.fetch(get_refuge('Tête Rousse'), anchor)

    assert excinfo.value.status_code == 503
    assert excinfo.value.refuge_name == 'Tête Rousse'


@pytest.mark.parametrize('body', [
    '<p>Your session expired, please log in</p>',
    '<p>Votre session a expiré</p>',
    '<p>SESSION EXPIRED</p>',
])
def test_expired_session_requires_reauth(body, anchor):
    fetcher = RefugeFetcher('old', session=FakeSession([FakeResponse(200, body)]))

    with pytest.raises(ReauthRequired):
        fetcher.fetch(get_refuge('Tête Rousse'), anchor)


def test_needs_reauth_ignores_calendar():
    assert not needs_reauth(AVAILABLE_PAGE)
