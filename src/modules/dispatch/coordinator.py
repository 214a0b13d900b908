"""Realtime sync coordinator.

Subscribes a view to the change feed and turns bursts of row events
into a single refresh.  A claim, for example, produces a
``delivery_orders`` update and a ``couriers`` update within
milliseconds; both land inside one debounce window and trigger one
refetch.

Subscriptions belong to the coordinator and are torn down on
``close()``.  If the feed cannot be reached the coordinator still works:
``refresh_now()`` serves pull-to-refresh and focus regain, it just no
longer refreshes on its own (``is_live`` is false).
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Collection, List, Mapping, Optional

import structlog
from django.conf import settings

from shared.domain.feed import (
    ChangeEvent,
    ChangeOperation,
    FeedUnavailable,
    IChangeFeed,
    ISubscription,
)

logger = structlog.get_logger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


class RealtimeSyncCoordinator:
    def __init__(
        self,
        feed: IChangeFeed,
        refresh: Callable[[], Any],
        delay: Optional[float] = None,
        timer_factory: TimerFactory = threading.Timer,
        name: str = "view",
    ) -> None:
        self._feed = feed
        self._refresh = refresh
        self._delay = settings.REALTIME_DEBOUNCE_SECONDS if delay is None else delay
        self._timer_factory = timer_factory
        self._lock = threading.RLock()
        self._timer: Optional[Any] = None
        self._subscriptions: List[ISubscription] = []
        self._degraded = False
        self._closed = False
        self._log = logger.bind(view=name)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def watch_deliveries(self) -> bool:
        """Every delivery-order mutation."""
        return self._subscribe("delivery_orders")

    def watch_delivery(self, delivery_id: Any) -> bool:
        return self._subscribe("delivery_orders", row_filter={"id": delivery_id})

    def watch_tracking(self, delivery_id: Any) -> bool:
        return self._subscribe(
            "delivery_tracking", row_filter={"delivery_id": delivery_id}
        )

    def watch_courier(self, courier_id: Any) -> bool:
        return self._subscribe(
            "couriers",
            row_filter={"user_id": courier_id},
            operations={ChangeOperation.UPDATE},
        )

    def _subscribe(
        self,
        table: str,
        row_filter: Optional[Mapping[str, Any]] = None,
        operations: Optional[Collection[ChangeOperation]] = None,
    ) -> bool:
        with self._lock:
            if self._closed:
                raise RuntimeError("Coordinator is closed.")
            try:
                subscription = self._feed.subscribe(
                    table, self._on_event, row_filter=row_filter, operations=operations
                )
            except FeedUnavailable:
                self._degraded = True
                self._log.warning("realtime.feed_unavailable", table=table)
                return False
            self._subscriptions.append(subscription)
        return True

    @property
    def is_live(self) -> bool:
        with self._lock:
            return (
                not self._closed
                and not self._degraded
                and bool(self._subscriptions)
                and all(sub.active for sub in self._subscriptions)
            )

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    # ------------------------------------------------------------------
    # Debounce
    # ------------------------------------------------------------------

    def _on_event(self, event: ChangeEvent) -> None:
        self._log.debug(
            "realtime.event", table=event.table, operation=event.operation.value
        )
        self.queue_refresh()

    def queue_refresh(self) -> None:
        """Schedule a refresh after the debounce delay, restarting the window."""
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self._delay, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._timer = None
        try:
            self._refresh()
        except Exception:
            self._log.exception("realtime.refresh_failed")

    def refresh_now(self) -> Any:
        """Refresh immediately (pull-to-refresh, focus regained)."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        return self._refresh()

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.unsubscribe()
        self._log.debug("realtime.closed", subscriptions=len(subscriptions))

    def __enter__(self) -> RealtimeSyncCoordinator:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
