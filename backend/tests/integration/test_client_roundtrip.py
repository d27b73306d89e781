"""
End-to-end: REST client + state store + realtime feed against the ASGI app
"""
import asyncio

import httpx
import pytest

from globalunlock.client import ApiError, ClientStateStore, FeedSupervisor, GlobalUnlockApi, LocalTransport
from globalunlock.db import get_db

from tests.helpers.unlock_helpers import make_token


async def wait_for(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


@pytest.fixture
def asgi_app(app, seeded):
    def _override():
        yield seeded

    app.dependency_overrides[get_db] = _override
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


def make_api(app, token=None):
    return GlobalUnlockApi("http://testserver", token=token, transport=httpx.ASGITransport(app=app))


@pytest.mark.asyncio
async def test_admin_update_reaches_both_stores(asgi_app):
    admin_api = make_api(asgi_app, token=make_token())
    viewer_api = make_api(asgi_app)

    admin_store = ClientStateStore()
    assert await admin_store.refresh(admin_api) is True
    assert admin_store.get_country("AU").activation_count == 4

    # A second client watching through the in-process feed
    viewer_store = ClientStateStore()
    supervisor = FeedSupervisor(LocalTransport(asgi_app.state.change_feed), viewer_store, viewer_api)
    await supervisor.start()
    assert viewer_store.is_realtime_connected is True
    # Both clients share one test session; let the catch-up refresh finish first
    await wait_for(lambda: not supervisor._background)

    try:
        result = await admin_api.update_country("AU", "increment", 3)
        assert admin_store.apply_mutation_result(result) is True
        assert admin_store.get_country("AU").glow_band == 3

        await wait_for(lambda: viewer_store.get_country("AU").activation_count == 7)
        assert viewer_store.get_country("AU").glow_band == 3
    finally:
        await supervisor.stop()
        await admin_api.aclose()
        await viewer_api.aclose()


@pytest.mark.asyncio
async def test_energy_unlock_then_increment_refused(asgi_app):
    async with make_api(asgi_app, token=make_token()) as api:
        unlocked = await api.update_energy("absolute", 100)
        assert unlocked.is_unlocked is True

        with pytest.raises(ApiError) as exc:
            await api.update_energy("increment", 1)

    assert exc.value.status_code == 400
    assert exc.value.message == "Unlock complete - no further increments allowed"


@pytest.mark.asyncio
async def test_anonymous_mutation_refused(asgi_app):
    async with make_api(asgi_app) as api:
        with pytest.raises(ApiError) as exc:
            await api.update_country("AU", "increment", 1)
        snapshot = await api.fetch_state()

    assert exc.value.status_code == 401
    assert {c.country_code: c.activation_count for c in snapshot.countries}["AU"] == 4
