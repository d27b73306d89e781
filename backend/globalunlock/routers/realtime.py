"""
Realtime push of committed state changes over Server-Sent Events.

    GET /v1/realtime/stream?tables=locker_state,country_states

Each change is sent as

    event: change
    data: {"table": "country_states", "event": "UPDATE", "new": {...full row...}}

with a ": heartbeat" comment every REALTIME_HEARTBEAT_SECONDS so proxies and
clients can tell a quiet stream from a dead one.
"""
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from ..core.config import settings
from ..dependencies.services import get_change_feed
from ..errors import InvalidRequest
from ..services.change_feed import TABLES, ChangeFeed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/realtime", tags=["realtime"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def sse_format(event: str, data_obj: Dict[str, Any], event_id: Optional[str] = None) -> str:
    # One message ends with a blank line
    msg = ""
    if event_id is not None:
        msg += f"id: {event_id}\n"
    msg += f"event: {event}\n"
    msg += "data: " + json.dumps(data_obj, separators=(",", ":")) + "\n\n"
    return msg


def sse_comment(text: str) -> str:
    return f": {text}\n\n"


@router.get("/stream")
async def stream_changes(
    request: Request,
    tables: Optional[str] = Query(None, description="Comma-separated table names; default all"),
    feed: ChangeFeed = Depends(get_change_feed),
):
    wanted = [t.strip() for t in tables.split(",") if t.strip()] if tables else list(TABLES)
    unknown = set(wanted) - TABLES
    if unknown:
        raise InvalidRequest(f"Unknown tables: {', '.join(sorted(unknown))}")

    subscription = feed.open_subscription(wanted)
    heartbeat = settings.REALTIME_HEARTBEAT_SECONDS

    async def gen():
        sequence = 0
        try:
            yield sse_comment("connected")
            while True:
                if await request.is_disconnected():
                    break
                change = await subscription.get(timeout=heartbeat)
                if change is None:
                    yield sse_comment("heartbeat")
                    continue
                sequence += 1
                yield sse_format("change", change.to_dict(), event_id=str(sequence))
        finally:
            feed.close_subscription(subscription)
            if subscription.dropped:
                logger.warning(
                    f"Realtime subscription {subscription.id} closed with {subscription.dropped} dropped events"
                )

    return StreamingResponse(gen(), media_type="text/event-stream", headers=SSE_HEADERS)
