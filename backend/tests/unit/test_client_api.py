"""
Unit tests for the async REST client
"""
import json

import httpx
import pytest

from globalunlock.client.api import ApiError, GlobalUnlockApi, MutationOutcomeUnknown

SNAPSHOT = {
    "locker": {"id": 1, "energy_percentage": 40, "is_unlocked": False, "last_updated": "2025-03-01T00:00:00Z"},
    "countries": [
        {"country_code": "AU", "activation_count": 4, "glow_band": 2, "last_updated": "2025-03-01T00:00:00Z"},
    ],
}


def make_api(handler, token="tok"):
    return GlobalUnlockApi("http://testserver/", token=token, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_state():
    def handler(request):
        assert request.url.path == "/v1/state"
        return httpx.Response(200, json={"success": True, "data": SNAPSHOT})

    async with make_api(handler) as api:
        snapshot = await api.fetch_state()

    assert snapshot.locker.energy_percentage == 40
    assert snapshot.countries[0].country_code == "AU"


@pytest.mark.asyncio
async def test_update_country_sends_body_and_token():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": {
                    "country_code": "AU",
                    "activation_count": 7,
                    "glow_band": 3,
                    "last_updated": "2025-03-01T00:00:05Z",
                },
            },
        )

    async with make_api(handler) as api:
        result = await api.update_country("AU", "increment", 3, note="launch event")

    assert seen["path"] == "/v1/admin/update-country"
    assert seen["auth"] == "Bearer tok"
    assert seen["body"] == {"countryCode": "AU", "mode": "increment", "value": 3, "note": "launch event"}
    assert result.glow_band == 3


@pytest.mark.asyncio
async def test_update_energy_omits_empty_note():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": {"id": 1, "energy_percentage": 100, "is_unlocked": True, "last_updated": "2025-03-01T00:00:05Z"},
            },
        )

    async with make_api(handler) as api:
        result = await api.update_energy("absolute", 100)

    assert seen["body"] == {"mode": "absolute", "value": 100}
    assert result.is_unlocked is True


@pytest.mark.asyncio
async def test_error_body_raises_api_error():
    def handler(request):
        return httpx.Response(400, json={"success": False, "error": "Unlock complete - no further increments allowed"})

    async with make_api(handler) as api:
        with pytest.raises(ApiError) as exc:
            await api.update_energy("increment", 5)

    assert exc.value.status_code == 400
    assert exc.value.message == "Unlock complete - no further increments allowed"


@pytest.mark.asyncio
async def test_non_json_error_uses_reason_phrase():
    def handler(request):
        return httpx.Response(502, text="<html>bad gateway</html>")

    async with make_api(handler) as api:
        with pytest.raises(ApiError) as exc:
            await api.fetch_state()

    assert exc.value.status_code == 502
    assert exc.value.message == "Bad Gateway"


@pytest.mark.asyncio
async def test_timeout_is_outcome_unknown():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async with make_api(handler) as api:
        with pytest.raises(MutationOutcomeUnknown):
            await api.update_country("AU", "increment", 1)


@pytest.mark.asyncio
async def test_no_token_sends_no_auth_header():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"success": True, "data": SNAPSHOT})

    async with make_api(handler, token=None) as api:
        await api.fetch_state()
        assert api.stream_url == "http://testserver/v1/realtime/stream"

    assert seen["auth"] is None
