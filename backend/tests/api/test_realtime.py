"""
API tests for the realtime stream endpoint
"""
import json

from globalunlock.routers.realtime import SSE_HEADERS, sse_format


def test_unknown_table_rejected(client):
    response = client.get("/v1/realtime/stream", params={"tables": "audit_log"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Unknown tables: audit_log"}


def test_rejected_stream_leaves_no_subscription(client, app):
    client.get("/v1/realtime/stream", params={"tables": "locker_state,bogus"})
    assert app.state.change_feed.subscriber_count == 0


def test_sse_format():
    msg = sse_format("change", {"table": "locker_state", "new": {"id": 1}}, event_id="7")
    lines = msg.split("\n")

    assert lines[0] == "id: 7"
    assert lines[1] == "event: change"
    assert json.loads(lines[2][len("data: "):]) == {"table": "locker_state", "new": {"id": 1}}
    assert msg.endswith("\n\n")


def test_stream_headers_disable_buffering():
    assert SSE_HEADERS["Cache-Control"] == "no-cache"
    assert SSE_HEADERS["X-Accel-Buffering"] == "no"
