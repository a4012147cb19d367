"""
Poller and Daemon Tests

One check cycle end to end with a fake booking site, plus the daemon
loop and keep-alive pinger.
"""

from datetime import date

import requests

from conftest import FakeFetcher, FakeNotifier, FakeSession, FakeResponse, AVAILABLE_PAGE
from models.refuge import FULL
from monitoring.dedup import NotificationEngine, SCRAPE_WARNING
from monitoring.errors import TransportError, UpstreamError, ReauthRequired
from monitoring.poller import Poller, REAUTH_ALERT
from services.monitoring_daemon import MonitoringDaemon, ping_health, keep_alive
from webapp.state import StatusState

TETE_ROUSSE = 'BK_STRUCTURE:29'
GOUTER = 'BK_STRUCTURE:30'


def make_poller(pages, notifier, anchors=(date(2025, 8, 1),)):
    state = StatusState()
    engine = NotificationEngine(notifier)
    fetcher = FakeFetcher(pages)
    poller = Poller(fetcher, state, engine, notifier, anchors, max_attempts=2, base_delay=0,
                    sleep=lambda _: None)
    return poller, state, fetcher


def test_cycle_publishes_and_notifies():
    notifier = FakeNotifier()
    poller, state, _ = make_poller({TETE_ROUSSE: AVAILABLE_PAGE, GOUTER: AVAILABLE_PAGE}, notifier)

    snapshot = poller.run_cycle()

    assert snapshot['Tête Rousse']['2025-08-10'] == FULL
    published, last_check = state.read()
    assert published == snapshot
    assert last_check is not None and last_check.tzinfo is not None
    assert len(notifier.broadcasts) == 1


def test_partial_failures_keep_other_refuges():
    notifier = FakeNotifier()
    poller, state, _ = make_poller({TETE_ROUSSE: TransportError("timeout"), GOUTER: AVAILABLE_PAGE}, notifier)

    snapshot = poller.run_cycle()

    assert snapshot['Tête Rousse'] == {}
    assert snapshot['du Goûter']['2025-08-03'] == '2'
    assert len(notifier.broadcasts) == 1


def test_all_refuges_failing_warns_once():
    notifier = FakeNotifier()
    poller, _, _ = make_poller({TETE_ROUSSE: UpstreamError(502), GOUTER: UpstreamError(502)}, notifier)

    poller.run_cycle()

    assert notifier.operator_alerts == [SCRAPE_WARNING]


def test_reauth_alerts_once_per_episode():
    notifier = FakeNotifier()
    expired = ReauthRequired("Session expired")
    poller, _, fetcher = make_poller({TETE_ROUSSE: [expired, expired, AVAILABLE_PAGE, expired], GOUTER: AVAILABLE_PAGE},
                                     notifier)

    poller.run_cycle()
    poller.run_cycle()
    assert notifier.operator_alerts == [REAUTH_ALERT]
    assert ('du Goûter', date(2025, 8, 1)) not in fetcher.calls

    poller.run_cycle()
    poller.run_cycle()
    assert notifier.operator_alerts == [REAUTH_ALERT, REAUTH_ALERT]


def test_every_anchor_is_checked():
    notifier = FakeNotifier()
    anchors = (date(2025, 7, 1), date(2025, 8, 1))
    poller, _, fetcher = make_poller({TETE_ROUSSE: AVAILABLE_PAGE, GOUTER: AVAILABLE_PAGE}, notifier, anchors)

    poller.run_cycle()

    assert len(fetcher.calls) == 4


class StopDuringFetch(FakeFetcher):
    """Stops the poller from inside the first fetch, then fails it."""

    def __init__(self, pages):
        super().__init__(pages)
        self.poller = None

    def fetch(self, refuge, anchor):
        self.calls.append((refuge.name, anchor))
        self.poller.stop()
        raise TransportError("connection reset during shutdown")


def test_shutdown_mid_cycle_keeps_last_snapshot():
    notifier = FakeNotifier()
    poller, state, _ = make_poller({TETE_ROUSSE: AVAILABLE_PAGE, GOUTER: AVAILABLE_PAGE}, notifier)
    poller.run_cycle()
    published, last_check = state.read()

    fetcher = StopDuringFetch({})
    fetcher.poller = poller
    poller.fetcher = fetcher
    poller.run_cycle()

    assert len(fetcher.calls) == 1
    assert SCRAPE_WARNING not in notifier.operator_alerts
    assert state.read() == (published, last_check)
    assert len(notifier.broadcasts) == 1


class StoppingPoller:
    """Stops the daemon after a given number of cycles."""

    def __init__(self, cycles, fail=False):
        self.cycles = cycles
        self.fail = fail
        self.runs = 0
        self.daemon = None
        self.stopped = False

    def run_cycle(self):
        self.runs += 1
        if self.runs >= self.cycles:
            self.daemon.stop()
        if self.fail:
            raise TransportError("upstream down")
        return {}

    def stop(self):
        self.stopped = True


def test_daemon_runs_until_stopped():
    notifier = FakeNotifier()
    poller = StoppingPoller(cycles=3)
    ticks = []
    daemon = MonitoringDaemon(poller, notifier, interval_seconds=60, sleep=ticks.append, clock=lambda: 0.0)
    poller.daemon = daemon

    daemon.run()

    assert poller.runs == 3
    assert poller.stopped
    assert len(ticks) == 120
    assert notifier.operator_alerts[0].startswith('🚀')
    assert notifier.operator_alerts[-1].startswith('🛑')


def test_daemon_survives_cycle_errors():
    notifier = FakeNotifier()
    poller = StoppingPoller(cycles=2, fail=True)
    daemon = MonitoringDaemon(poller, notifier, interval_seconds=1, sleep=lambda _: None)
    poller.daemon = daemon

    daemon.run()

    assert poller.runs == 2


def test_ping_health():
    session = FakeSession([FakeResponse(200, 'OK')])

    assert ping_health('https://example.org/', session) is True
    assert session.calls[0][1] == 'https://example.org/health'

    assert ping_health('https://example.org', FakeSession([FakeResponse(503)])) is False
    assert ping_health('https://example.org', FakeSession([requests.ConnectionError("down")])) is False


def test_keep_alive_stops_when_asked():
    session = FakeSession([FakeResponse(200, 'OK')])
    remaining = iter([True] * 6 + [False] * 10)

    keep_alive('https://example.org', lambda: next(remaining), interval_seconds=2, session=session,
               sleep=lambda _: None)

    assert len(session.calls) == 2
