# mindspace/websockets/channel.py
import asyncio
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ChangeEventType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"


class ChangeEvent(BaseModel):
    """A committed row change, as delivered to subscribers."""
    table: str
    type: ChangeEventType
    new: Dict[str, Any]
    old: Optional[Dict[str, Any]] = None
    committed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Subscription:
    """
    A subscriber's view of one table.

    Events are queued on the event loop that created the subscription, so a
    publisher running in another thread never touches the queue directly.
    """

    def __init__(self, table: str, row_filter: Optional[Dict[str, Any]] = None):
        self.table = table
        self.row_filter = row_filter or {}
        self.loop = asyncio.get_running_loop()
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        return all(event.new.get(key) == value for key, value in self.row_filter.items())

    async def get(self) -> ChangeEvent:
        return await self.queue.get()

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        if self.closed:
            raise StopAsyncIteration
        return await self.queue.get()


class ChangeChannel:
    """Publish/subscribe fan-out of committed row changes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: List[Subscription] = []

    def subscribe(self, table: str, row_filter: Optional[Dict[str, Any]] = None) -> Subscription:
        """
        Start receiving changes for a table, optionally narrowed to rows whose
        columns equal the given values (e.g. ``{"id": room_id}``).

        Must be called from inside a running event loop.
        """
        subscription = Subscription(table, row_filter)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription):
        subscription.closed = True
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def publish(
            self,
            table: str,
            event_type: ChangeEventType,
            new: Dict[str, Any],
            old: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Deliver a change to every matching subscriber. Safe to call from any
        thread. Returns the number of subscribers the event was queued for.
        """
        event = ChangeEvent(table=table, type=event_type, new=new, old=old)

        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(event)]

        delivered = 0
        dead = []
        for subscription in targets:
            try:
                subscription.loop.call_soon_threadsafe(subscription.queue.put_nowait, event)
                delivered += 1
            except RuntimeError:
                # The subscriber's loop is gone
                dead.append(subscription)

        for subscription in dead:
            logger.warning(f"Dropping subscription on closed loop for table {subscription.table}")
            self.unsubscribe(subscription)

        return delivered

    def subscriber_count(self, table: Optional[str] = None) -> int:
        with self._lock:
            if table is None:
                return len(self._subscriptions)
            return len([s for s in self._subscriptions if s.table == table])


# Create a singleton instance
change_channel = ChangeChannel()
