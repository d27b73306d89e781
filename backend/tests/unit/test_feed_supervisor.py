"""
Unit tests for the realtime feed supervisor and polling fallback
"""
import asyncio
from datetime import datetime, timezone

import pytest

from globalunlock.client.feed import (
    CONNECTED,
    DEGRADED,
    POLLING,
    FeedSupervisor,
    LocalTransport,
    PollingFallback,
    RealtimeTransport,
)
from globalunlock.client.store import ClientStateStore
from globalunlock.schemas.state import CountryStateSchema, LockerStateSchema, StateSnapshot
from globalunlock.services.change_feed import COUNTRY_TABLE, ChangeFeed

T0 = datetime(2025, 3, 1, tzinfo=timezone.utc)


class FakeTransport(RealtimeTransport):
    """Connection state is driven by the test."""

    def __init__(self):
        super().__init__()
        self.started = 0

    async def start(self):
        self.started += 1

    async def stop(self):
        self._set_connected(False)

    def connect(self):
        self._set_connected(True)

    def disconnect(self):
        self._set_connected(False)


class CountingApi:
    def __init__(self):
        self.calls = 0

    async def fetch_state(self):
        self.calls += 1
        return StateSnapshot(
            locker=LockerStateSchema(id=1, energy_percentage=40, is_unlocked=False, last_updated=T0),
            countries=[CountryStateSchema(country_code="AU", activation_count=4, glow_band=2, last_updated=T0)],
        )


async def wait_for(predicate, timeout=1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def api():
    return CountingApi()


@pytest.fixture
def store():
    return ClientStateStore()


@pytest.mark.asyncio
async def test_start_fetches_and_waits_degraded(transport, api, store):
    supervisor = FeedSupervisor(transport, store, api, poll_interval_seconds=0.01, degraded_grace_seconds=5)
    await supervisor.start()

    assert api.calls == 1
    assert transport.started == 1
    assert supervisor.state == DEGRADED
    assert store.get_country("AU").activation_count == 4
    await supervisor.stop()


@pytest.mark.asyncio
async def test_connect_triggers_one_catch_up_refresh(transport, api, store):
    supervisor = FeedSupervisor(transport, store, api, poll_interval_seconds=0.01, degraded_grace_seconds=5)
    await supervisor.start()

    transport.connect()
    await wait_for(lambda: api.calls == 2)
    await asyncio.sleep(0.02)

    assert supervisor.state == CONNECTED
    assert store.is_realtime_connected is True
    assert api.calls == 2
    assert not supervisor.poller.is_running
    await supervisor.stop()


@pytest.mark.asyncio
async def test_sustained_disconnect_falls_back_to_polling(transport, api, store):
    supervisor = FeedSupervisor(transport, store, api, poll_interval_seconds=0.01, degraded_grace_seconds=0.03)
    await supervisor.start()
    transport.connect()

    transport.disconnect()
    assert supervisor.state == DEGRADED
    assert store.is_realtime_connected is False

    await wait_for(lambda: supervisor.state == POLLING)
    await wait_for(lambda: supervisor.poller.poll_count >= 2)
    assert supervisor.poller.is_running

    # A second start is refused: only one poller ever runs
    assert supervisor.poller.start() is False
    await supervisor.stop()


@pytest.mark.asyncio
async def test_reconnect_stops_poller_immediately(transport, api, store):
    supervisor = FeedSupervisor(transport, store, api, poll_interval_seconds=0.01, degraded_grace_seconds=0.01)
    await supervisor.start()
    await wait_for(lambda: supervisor.state == POLLING)

    transport.connect()

    assert supervisor.state == CONNECTED
    assert not supervisor.poller.is_running
    polls = supervisor.poller.poll_count
    await asyncio.sleep(0.05)
    assert supervisor.poller.poll_count == polls
    await supervisor.stop()


@pytest.mark.asyncio
async def test_brief_disconnect_within_grace_never_polls(transport, api, store):
    supervisor = FeedSupervisor(transport, store, api, poll_interval_seconds=0.01, degraded_grace_seconds=0.2)
    await supervisor.start()
    transport.connect()

    transport.disconnect()
    await asyncio.sleep(0.02)
    transport.connect()
    await asyncio.sleep(0.3)

    assert supervisor.state == CONNECTED
    assert supervisor.poller.poll_count == 0
    await supervisor.stop()


@pytest.mark.asyncio
async def test_pushed_changes_reach_store(transport, api, store):
    supervisor = FeedSupervisor(transport, store, api, degraded_grace_seconds=5)
    await supervisor.start()

    transport.dispatch(
        COUNTRY_TABLE,
        {"country_code": "AU", "activation_count": 7, "glow_band": 3, "last_updated": "2025-03-02T00:00:00Z"},
    )

    assert store.get_country("AU").activation_count == 7
    await supervisor.stop()


@pytest.mark.asyncio
async def test_stop_unsubscribes(transport, api, store):
    supervisor = FeedSupervisor(transport, store, api, degraded_grace_seconds=5)
    await supervisor.start()
    await supervisor.stop()

    transport.dispatch(
        COUNTRY_TABLE,
        {"country_code": "AU", "activation_count": 9, "glow_band": 3, "last_updated": "2025-03-02T00:00:00Z"},
    )
    assert store.get_country("AU").activation_count == 4


@pytest.mark.asyncio
async def test_polling_fallback_start_stop_idempotent(api, store):
    poller = PollingFallback(store, api, interval_seconds=0.01)

    assert poller.start() is True
    assert poller.start() is False
    await wait_for(lambda: api.calls >= 1)

    assert poller.stop() is True
    assert poller.stop() is False
    assert not poller.is_running


@pytest.mark.asyncio
async def test_local_transport_bridges_change_feed(store, api):
    feed = ChangeFeed()
    transport = LocalTransport(feed)
    supervisor = FeedSupervisor(transport, store, api, degraded_grace_seconds=5)

    await supervisor.start()
    assert supervisor.state == CONNECTED
    assert feed.subscriber_count == 1

    feed.publish(
        COUNTRY_TABLE,
        {"country_code": "AU", "activation_count": 8, "glow_band": 3, "last_updated": "2025-03-02T00:00:00Z"},
    )
    await wait_for(lambda: store.get_country("AU").activation_count == 8)

    await supervisor.stop()
    assert feed.subscriber_count == 0
    assert not transport.is_connected
