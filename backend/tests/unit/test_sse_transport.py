"""
Unit tests for SSE parsing and the httpx-backed realtime transport
"""
import asyncio
import json

import httpx
import pytest

from globalunlock.client.feed import SseMessage, SseTransport, iter_sse_messages
from globalunlock.routers.realtime import sse_comment, sse_format

STREAM_URL = "http://testserver/v1/realtime/stream"

AU_ROW = {"country_code": "AU", "activation_count": 7, "glow_band": 3, "last_updated": "2025-03-01T00:00:00Z"}
LOCKER_ROW = {"id": 1, "energy_percentage": 100, "is_unlocked": True, "last_updated": "2025-03-01T00:00:00Z"}


async def alines(lines):
    for line in lines:
        yield line


async def collect(lines):
    return [m async for m in iter_sse_messages(alines(lines))]


async def wait_for(predicate, timeout=1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


class TestIterSseMessages:
    @pytest.mark.asyncio
    async def test_event_data_and_id(self):
        messages = await collect(["id: 3", "event: change", 'data: {"a":1}', ""])
        assert messages == [SseMessage(event="change", data='{"a":1}', id="3")]

    @pytest.mark.asyncio
    async def test_comments_and_heartbeats_skipped(self):
        messages = await collect([": connected", "", ": heartbeat", "", "event: change", "data: x", ""])
        assert [m.data for m in messages] == ["x"]

    @pytest.mark.asyncio
    async def test_multiline_data_joined(self):
        messages = await collect(["data: first", "data: second", ""])
        assert messages[0].data == "first\nsecond"
        assert messages[0].event == "message"

    @pytest.mark.asyncio
    async def test_unterminated_block_not_emitted(self):
        assert await collect(["event: change", "data: partial"]) == []

    @pytest.mark.asyncio
    async def test_round_trips_server_format(self):
        body = sse_comment("connected") + sse_format("change", {"table": "country_states", "new": AU_ROW}, "1")
        messages = await collect(body.split("\n"))
        assert len(messages) == 1
        assert json.loads(messages[0].data)["new"] == AU_ROW


def sse_body(*changes):
    parts = [sse_comment("connected")]
    for i, (table, row) in enumerate(changes, start=1):
        parts.append(sse_format("change", {"table": table, "event": "UPDATE", "new": row}, str(i)))
    parts.append(sse_format("other", {"ignored": True}))
    return "".join(parts).encode()


class TestSseTransport:
    @pytest.mark.asyncio
    async def test_dispatches_changes_and_reports_health(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=sse_body(("country_states", AU_ROW), ("locker_state", LOCKER_ROW)),
            )

        transport = SseTransport(
            STREAM_URL,
            headers={"Authorization": "Bearer abc"},
            reconnect_delay=10,
            transport=httpx.MockTransport(handler),
        )
        countries, lockers, statuses = [], [], []
        transport.subscribe(on_locker_change=lockers.append, on_country_change=countries.append)
        transport.add_status_listener(statuses.append)

        await transport.start()
        await wait_for(lambda: statuses == [True, False])
        await transport.stop()

        assert countries == [AU_ROW]
        assert lockers == [LOCKER_ROW]
        assert requests[0].headers["accept"] == "text/event-stream"
        assert requests[0].headers["authorization"] == "Bearer abc"

    @pytest.mark.asyncio
    async def test_error_status_retries_without_connecting(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, json={"success": False, "error": "down"})

        transport = SseTransport(STREAM_URL, reconnect_delay=0.01, transport=httpx.MockTransport(handler))
        statuses = []
        transport.add_status_listener(statuses.append)

        await transport.start()
        await wait_for(lambda: len(calls) >= 2)
        await transport.stop()

        assert statuses == []
        assert not transport.is_connected

    @pytest.mark.asyncio
    async def test_malformed_payload_skipped(self):
        body = b"event: change\ndata: not-json\n\n" + sse_body(("country_states", AU_ROW))

        def handler(request):
            return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=body)

        transport = SseTransport(STREAM_URL, reconnect_delay=10, transport=httpx.MockTransport(handler))
        countries = []
        transport.subscribe(on_country_change=countries.append)

        await transport.start()
        await wait_for(lambda: countries)
        await transport.stop()

        assert countries == [AU_ROW]

    @pytest.mark.asyncio
    async def test_unsubscribed_handle_gets_nothing(self):
        def handler(request):
            return httpx.Response(
                200, headers={"content-type": "text/event-stream"}, content=sse_body(("country_states", AU_ROW))
            )

        transport = SseTransport(STREAM_URL, reconnect_delay=10, transport=httpx.MockTransport(handler))
        countries, statuses = [], []
        handle = transport.subscribe(on_country_change=countries.append)
        transport.unsubscribe(handle)
        transport.add_status_listener(statuses.append)

        await transport.start()
        await wait_for(lambda: statuses == [True, False])
        await transport.stop()

        assert countries == []
        assert handle.active is False

    @pytest.mark.asyncio
    async def test_non_object_payload_skipped(self):
        body = b"event: change\ndata: [1,2]\n\nevent: change\ndata: 42\n\n" + sse_body(("country_states", AU_ROW))

        def handler(request):
            return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=body)

        transport = SseTransport(STREAM_URL, reconnect_delay=10, transport=httpx.MockTransport(handler))
        countries = []
        transport.subscribe(on_country_change=countries.append)

        await transport.start()
        await wait_for(lambda: countries)
        assert not transport._task.done()
        await transport.stop()

        assert countries == [AU_ROW]

    @pytest.mark.asyncio
    async def test_unexpected_error_reconnects(self, monkeypatch):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(
                200, headers={"content-type": "text/event-stream"}, content=sse_body(("country_states", AU_ROW))
            )

        transport = SseTransport(STREAM_URL, reconnect_delay=0.01, transport=httpx.MockTransport(handler))

        def broken_handle(message):
            raise RuntimeError("callback bug")

        monkeypatch.setattr(transport, "_handle_message", broken_handle)

        await transport.start()
        await wait_for(lambda: len(calls) >= 2)
        assert not transport._task.done()
        await transport.stop()

        assert not transport.is_connected
