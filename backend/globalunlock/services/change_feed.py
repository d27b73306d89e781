"""
In-process change feed for the two mutable tables.

The mutation service publishes the full committed row after every successful
write; realtime endpoints (and in-process clients) subscribe with an asyncio
queue. Every event carries the complete row, so a dropped event is repaired by
the next event or by the client's polling fallback.
"""
import asyncio
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

logger = logging.getLogger(__name__)

LOCKER_TABLE = "locker_state"
COUNTRY_TABLE = "country_states"
TABLES = frozenset({LOCKER_TABLE, COUNTRY_TABLE})


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    new: Dict[str, Any]
    event: str = "UPDATE"

    def to_dict(self) -> Dict[str, Any]:
        return {"table": self.table, "event": self.event, "new": self.new}


@dataclass
class Subscription:
    id: int
    tables: FrozenSet[str]
    queue: asyncio.Queue
    loop: asyncio.AbstractEventLoop
    dropped: int = field(default=0)

    async def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Wait for the next event; None on timeout."""
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None


class ChangeFeed:
    """Fan-out of committed row changes, keyed by table name"""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscriptions: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def open_subscription(self, tables: Optional[Iterable[str]] = None) -> Subscription:
        """Register a subscriber. Must be called from the event loop that will consume it."""
        wanted = frozenset(tables) if tables else TABLES
        unknown = wanted - TABLES
        if unknown:
            raise ValueError(f"Unknown tables: {sorted(unknown)}")
        subscription = Subscription(
            id=next(self._ids),
            tables=wanted,
            queue=asyncio.Queue(maxsize=self.queue_size),
            loop=asyncio.get_running_loop(),
        )
        with self._lock:
            self._subscriptions[subscription.id] = subscription
        logger.info(f"Opened change subscription {subscription.id} for {sorted(wanted)}")
        return subscription

    def close_subscription(self, subscription: Subscription) -> None:
        with self._lock:
            removed = self._subscriptions.pop(subscription.id, None)
        if removed is not None:
            logger.info(f"Closed change subscription {subscription.id}")

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, table: str, row: Dict[str, Any]) -> int:
        """
        Deliver a committed row to every subscriber of the table.

        Safe to call from worker threads (sync route handlers).

        Returns:
            Number of subscribers the event was handed to
        """
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")
        event = ChangeEvent(table=table, new=row)

        with self._lock:
            targets = [s for s in self._subscriptions.values() if table in s.tables]

        delivered = 0
        for subscription in targets:
            try:
                subscription.loop.call_soon_threadsafe(self._offer, subscription, event)
                delivered += 1
            except RuntimeError:
                # Consumer loop already closed
                self.close_subscription(subscription)
        logger.debug(f"Published {table} change to {delivered} subscribers")
        return delivered

    def _offer(self, subscription: Subscription, event: ChangeEvent) -> None:
        try:
            subscription.queue.put_nowait(event)
        except asyncio.QueueFull:
            subscription.dropped += 1
            logger.warning(
                f"Change subscription {subscription.id} queue full, dropped {event.table} event "
                f"(total dropped={subscription.dropped})"
            )
