"""In-memory change feed implementation."""

from __future__ import annotations

import threading
from typing import Any, Collection, Dict, List, Mapping, Optional

import structlog
from django.db import transaction

from shared.domain.feed import (
    ChangeEvent,
    ChangeHandler,
    ChangeOperation,
    FeedUnavailable,
    IChangeFeed,
)

logger = structlog.get_logger(__name__)


class Subscription:
    """A handler bound to one table, optionally narrowed to matching rows."""

    def __init__(
        self,
        feed: InMemoryChangeFeed,
        table: str,
        handler: ChangeHandler,
        row_filter: Optional[Mapping[str, Any]] = None,
        operations: Optional[Collection[ChangeOperation]] = None,
    ) -> None:
        self._feed = feed
        self.table = table
        self.handler = handler
        self.row_filter = dict(row_filter or {})
        self.operations = frozenset(operations) if operations else None
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        if self.operations is not None and event.operation not in self.operations:
            return False
        # Compare as strings: the same key may arrive as int or str.
        return all(
            str(event.value(column)) == str(expected)
            for column, expected in self.row_filter.items()
        )

    def unsubscribe(self) -> None:
        self._feed.unsubscribe(self)

    def _deactivate(self) -> None:
        self._active = False

    def __repr__(self) -> str:
        return f"<Subscription {self.table} {self.row_filter or '*'}>"


class InMemoryChangeFeed(IChangeFeed):
    """Simple in-process change feed.

    ``disconnect()`` simulates a lost connection: existing subscriptions
    are dropped and new ones raise ``FeedUnavailable`` until ``connect()``.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._connected = True

    @property
    def connected(self) -> bool:
        return self._connected

    def subscribe(
        self,
        table: str,
        handler: ChangeHandler,
        *,
        row_filter: Optional[Mapping[str, Any]] = None,
        operations: Optional[Collection[ChangeOperation]] = None,
    ) -> Subscription:
        with self._lock:
            if not self._connected:
                raise FeedUnavailable("Change feed is not connected.")
            subscription = Subscription(self, table, handler, row_filter, operations)
            self._subscriptions.setdefault(table, []).append(subscription)
        logger.debug("feed.subscribed", table=table, row_filter=subscription.row_filter)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            handlers = self._subscriptions.get(subscription.table, [])
            if subscription in handlers:
                handlers.remove(subscription)
            subscription._deactivate()

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            targets = [
                sub
                for sub in self._subscriptions.get(event.table, [])
                if sub.matches(event)
            ]
        for subscription in targets:
            try:
                subscription.handler(event)
            except Exception:
                # Handlers are isolated from one another.
                logger.exception(
                    "feed.handler_failed",
                    table=event.table,
                    operation=event.operation.value,
                )

    def subscriber_count(self, table: Optional[str] = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscriptions.get(table, []))
            return sum(len(subs) for subs in self._subscriptions.values())

    def disconnect(self) -> None:
        with self._lock:
            self._connected = False
            for subs in self._subscriptions.values():
                for sub in subs:
                    sub._deactivate()
            self._subscriptions.clear()
        logger.warning("feed.disconnected")

    def connect(self) -> None:
        with self._lock:
            self._connected = True
        logger.info("feed.connected")


# Global feed instance (one per process)

change_feed = InMemoryChangeFeed()


def publish_on_commit(event: ChangeEvent, feed: Optional[IChangeFeed] = None) -> None:
    """Publish *event* once the surrounding transaction commits.

    Outside a transaction the event is published immediately.  Events
    from rolled-back transactions are never published.
    """
    target = feed or change_feed
    transaction.on_commit(lambda: target.publish(event))
