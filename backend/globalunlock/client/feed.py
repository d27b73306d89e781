"""
Realtime Feed (client side)

Transports push full-row change events into subscriber callbacks and expose
connection health. The FeedSupervisor is the one place that decides between
push and poll:

    connected --disconnect--> degraded --grace expired--> polling
        ^                         |                          |
        +-------reconnect---------+----------reconnect-------+

On every reconnect the poller is stopped before anything else and one
catch-up refresh runs, since events may have been missed while disconnected.
"""
import asyncio
import itertools
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import httpx

from ..core.config import settings
from ..services.change_feed import COUNTRY_TABLE, LOCKER_TABLE, ChangeFeed, Subscription

logger = logging.getLogger(__name__)

RowCallback = Callable[[Dict[str, Any]], None]
StatusListener = Callable[[bool], None]

CONNECTED = "connected"
DEGRADED = "degraded"
POLLING = "polling"

_handle_ids = itertools.count(1)


@dataclass
class SubscriptionHandle:
    id: int
    on_locker_change: Optional[RowCallback]
    on_country_change: Optional[RowCallback]
    active: bool = True


class RealtimeTransport(ABC):
    """Push channel for locker_state / country_states changes."""

    def __init__(self):
        self._handles: Dict[int, SubscriptionHandle] = {}
        self._status_listeners: List[StatusListener] = []
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def add_status_listener(self, listener: StatusListener) -> Callable[[], None]:
        self._status_listeners.append(listener)

        def remove() -> None:
            if listener in self._status_listeners:
                self._status_listeners.remove(listener)

        return remove

    def _set_connected(self, connected: bool) -> None:
        if connected == self._connected:
            return
        self._connected = connected
        logger.info(f"{type(self).__name__} {'connected' if connected else 'disconnected'}")
        for listener in list(self._status_listeners):
            try:
                listener(connected)
            except Exception as e:
                logger.error(f"Error in transport status listener: {e}")

    def subscribe(
        self,
        on_locker_change: Optional[RowCallback] = None,
        on_country_change: Optional[RowCallback] = None,
    ) -> SubscriptionHandle:
        handle = SubscriptionHandle(
            id=next(_handle_ids),
            on_locker_change=on_locker_change,
            on_country_change=on_country_change,
        )
        self._handles[handle.id] = handle
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        handle.active = False
        self._handles.pop(handle.id, None)

    def dispatch(self, table: str, row: Dict[str, Any]) -> None:
        """Route one change to every active handle."""
        if table not in (LOCKER_TABLE, COUNTRY_TABLE):
            logger.debug(f"Ignoring change for unknown table: {table}")
            return
        for handle in list(self._handles.values()):
            callback = handle.on_locker_change if table == LOCKER_TABLE else handle.on_country_change
            if callback is None:
                continue
            try:
                callback(row)
            except Exception as e:
                logger.error(f"Error in realtime callback for {table}: {e}")

    @abstractmethod
    async def start(self) -> None:
        """Begin receiving changes (returns once the receive loop is scheduled)."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop receiving and mark the transport disconnected."""


# -- Server-Sent Events -----------------------------------------------------


@dataclass(frozen=True)
class SseMessage:
    event: str
    data: str
    id: Optional[str] = None


async def iter_sse_messages(lines: AsyncIterator[str]) -> AsyncIterator[SseMessage]:
    """Minimal SSE parser: yields one SseMessage per blank-line-terminated block. Comments are skipped."""
    event = None
    event_id = None
    data_lines: List[str] = []
    async for line in lines:
        line = line.rstrip("\r\n")

        if line == "":
            if data_lines:
                yield SseMessage(event=event or "message", data="\n".join(data_lines), id=event_id)
            event = None
            event_id = None
            data_lines = []
            continue

        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event = value
        elif field == "data":
            data_lines.append(value)
        elif field == "id":
            event_id = value


class SseTransport(RealtimeTransport):
    """Reads the server's /v1/realtime/stream with httpx and reconnects on failure."""

    def __init__(
        self,
        stream_url: str,
        headers: Optional[Dict[str, str]] = None,
        reconnect_delay: float = 2.0,
        read_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.stream_url = stream_url
        self.headers = {"Accept": "text/event-stream", **(headers or {})}
        self.reconnect_delay = reconnect_delay
        # Several missed heartbeats means the stream is dead
        self.read_timeout = read_timeout or settings.REALTIME_HEARTBEAT_SECONDS * 3
        self._transport = transport
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._set_connected(False)

    def _handle_message(self, message: SseMessage) -> None:
        if message.event != "change":
            return
        try:
            payload = json.loads(message.data)
        except json.JSONDecodeError:
            logger.warning(f"Malformed realtime payload: {message.data[:200]}")
            return
        if not isinstance(payload, dict):
            logger.warning(f"Realtime payload is not an object: {message.data[:200]}")
            return
        table = payload.get("table")
        row = payload.get("new")
        if not table or not isinstance(row, dict):
            logger.warning(f"Realtime payload missing table/new: {payload}")
            return
        self.dispatch(table, row)

    async def _read_stream(self) -> None:
        timeout = httpx.Timeout(10.0, read=self.read_timeout)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            async with client.stream("GET", self.stream_url, headers=self.headers) as response:
                response.raise_for_status()
                self._set_connected(True)
                async for message in iter_sse_messages(response.aiter_lines()):
                    self._handle_message(message)

    async def _run(self) -> None:
        while True:
            try:
                await self._read_stream()
                logger.info("Realtime stream closed by server")
            except httpx.HTTPError as e:
                logger.warning(f"Realtime stream error: {e}")
            except Exception:
                # Only cancellation ends the loop
                logger.exception("Unexpected error reading realtime stream")
            finally:
                self._set_connected(False)
            await asyncio.sleep(self.reconnect_delay)


# -- In-process ---------------------------------------------------------------


class LocalTransport(RealtimeTransport):
    """Bridges a server ChangeFeed in the same process (tests, single-process deployments)."""

    def __init__(self, change_feed: ChangeFeed):
        super().__init__()
        self.change_feed = change_feed
        self._subscription: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._subscription = self.change_feed.open_subscription()
        self._task = asyncio.create_task(self._pump(self._subscription))
        self._set_connected(True)

    async def _pump(self, subscription: Subscription) -> None:
        while True:
            change = await subscription.get()
            if change is not None:
                self.dispatch(change.table, change.new)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._subscription is not None:
            self.change_feed.close_subscription(self._subscription)
            self._subscription = None
        self._set_connected(False)


# -- Polling fallback -------------------------------------------------------


class PollingFallback:
    """Re-fetches the full snapshot on a fixed interval. start/stop are idempotent."""

    def __init__(self, store, api, interval_seconds: Optional[float] = None):
        self.store = store
        self.api = api
        self.interval_seconds = interval_seconds or settings.POLL_INTERVAL_SECONDS
        self.poll_count = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Start polling. Returns False if already running."""
        if self.is_running:
            return False
        logger.info(f"Polling fallback started (every {self.interval_seconds}s)")
        self._task = asyncio.create_task(self._run())
        return True

    def stop(self) -> bool:
        """Stop polling immediately. Returns False if it was not running."""
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        logger.info(f"Polling fallback stopped after {self.poll_count} polls")
        return True

    async def _run(self) -> None:
        while True:
            self.poll_count += 1
            await self.store.refresh(self.api)
            await asyncio.sleep(self.interval_seconds)


# -- Supervisor -------------------------------------------------------------


class FeedSupervisor:
    """
    Owns the push transport and the polling fallback for one ClientStateStore.

    Args:
        transport: RealtimeTransport implementation
        store: ClientStateStore receiving changes
        api: GlobalUnlockApi used for snapshot fetches
        poll_interval_seconds: polling period once degraded past the grace window
        degraded_grace_seconds: how long a disconnect may last before polling starts
    """

    def __init__(
        self,
        transport: RealtimeTransport,
        store,
        api,
        poll_interval_seconds: Optional[float] = None,
        degraded_grace_seconds: Optional[float] = None,
    ):
        self.transport = transport
        self.store = store
        self.api = api
        self.degraded_grace_seconds = (
            settings.DEGRADED_GRACE_SECONDS if degraded_grace_seconds is None else degraded_grace_seconds
        )
        self.poller = PollingFallback(store, api, poll_interval_seconds)
        self.state = DEGRADED
        self._handle: Optional[SubscriptionHandle] = None
        self._remove_status_listener: Optional[Callable[[], None]] = None
        self._grace_task: Optional[asyncio.Task] = None
        self._background: set = set()

    async def start(self) -> None:
        """Initial fetch, then subscribe and connect the transport."""
        await self.store.refresh(self.api)
        self._handle = self.transport.subscribe(
            on_locker_change=lambda row: self.store.ingest_realtime_event(LOCKER_TABLE, row),
            on_country_change=lambda row: self.store.ingest_realtime_event(COUNTRY_TABLE, row),
        )
        self._remove_status_listener = self.transport.add_status_listener(self._on_status)
        await self.transport.start()
        if not self.transport.is_connected:
            self._enter_degraded()

    async def stop(self) -> None:
        if self._remove_status_listener is not None:
            self._remove_status_listener()
            self._remove_status_listener = None
        if self._handle is not None:
            self.transport.unsubscribe(self._handle)
            self._handle = None
        self._cancel_grace()
        self.poller.stop()
        for task in list(self._background):
            task.cancel()
        await self.transport.stop()
        self.store.set_realtime_connected(False)

    def _on_status(self, connected: bool) -> None:
        if connected:
            self._enter_connected()
        else:
            self._enter_degraded()

    def _enter_connected(self) -> None:
        self._cancel_grace()
        self.poller.stop()
        previous, self.state = self.state, CONNECTED
        self.store.set_realtime_connected(True)
        logger.info(f"Realtime feed {previous} -> {CONNECTED}")
        self._spawn(self.store.refresh(self.api))

    def _enter_degraded(self) -> None:
        if self.state != CONNECTED and self._grace_task is not None:
            return
        if self.state == POLLING:
            return
        previous, self.state = self.state, DEGRADED
        self.store.set_realtime_connected(False)
        logger.info(f"Realtime feed {previous} -> {DEGRADED}")
        self._cancel_grace()
        self._grace_task = asyncio.create_task(self._grace_then_poll())

    async def _grace_then_poll(self) -> None:
        await asyncio.sleep(self.degraded_grace_seconds)
        self._grace_task = None
        if self.transport.is_connected:
            return
        self.state = POLLING
        logger.warning(f"Realtime feed still down after {self.degraded_grace_seconds}s; polling")
        self.poller.start()

    def _cancel_grace(self) -> None:
        task, self._grace_task = self._grace_task, None
        if task is not None and not task.done():
            task.cancel()

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
