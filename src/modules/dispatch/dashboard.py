"""Courier dashboard: the dispatch board kept live for one courier.

Combines the view builder, a realtime coordinator and the courier's
tracking session.  Every refresh rebuilds both boards and reconciles
tracking with them: tracking starts for the first active delivery when
the session is not already on it for this courier, and stops once
nothing is active.

Claim / pickup / deliver go through the delivery service; a conflict is
reported as a message and the board is refreshed so the courier sees
the current state.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

import structlog

from modules.deliveries.exceptions import DeliveryConflict, DeliveryNotFound
from modules.dispatch.coordinator import RealtimeSyncCoordinator
from modules.tracking.exceptions import LocationPermissionDenied

if TYPE_CHECKING:
    from modules.deliveries.services import DeliveryService
    from modules.dispatch.builder import DispatchViewBuilder
    from modules.dispatch.dtos import DispatchDashboardDTO
    from modules.tracking.session import TrackingSession
    from shared.domain.feed import IChangeFeed
    from shared.domain.geo import Coordinate

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ActionOutcome:
    ok: bool
    message: Optional[str] = None


class CourierDashboard:
    def __init__(
        self,
        courier_id: int,
        builder: DispatchViewBuilder,
        deliveries: DeliveryService,
        feed: IChangeFeed,
        session: Optional[TrackingSession] = None,
        location: Callable[[], Optional[Coordinate]] = lambda: None,
        on_update: Optional[Callable[[DispatchDashboardDTO], None]] = None,
        **coordinator_options: Any,
    ) -> None:
        self.courier_id = courier_id
        self._builder = builder
        self._deliveries = deliveries
        self._session = session
        self._location = location
        self._on_update = on_update
        self._lock = threading.RLock()
        self._coordinator = RealtimeSyncCoordinator(
            feed, self.refresh, name="courier_dashboard", **coordinator_options
        )
        self.snapshot: Optional[DispatchDashboardDTO] = None
        self.tracking_warning: Optional[str] = None
        self._denied_delivery: Optional[int] = None

    @property
    def is_live(self) -> bool:
        return self._coordinator.is_live

    def open(self) -> DispatchDashboardDTO:
        self._coordinator.watch_deliveries()
        self._coordinator.watch_courier(self.courier_id)
        return self._coordinator.refresh_now()

    def refresh(self) -> DispatchDashboardDTO:
        with self._lock:
            snapshot = self._builder.dashboard(self.courier_id, self._location())
            self.snapshot = snapshot
            self._sync_tracking(snapshot)
        if self._on_update is not None:
            self._on_update(snapshot)
        return snapshot

    def close(self) -> None:
        self._coordinator.close()

    def __enter__(self) -> CourierDashboard:
        self.open()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Courier actions
    # ------------------------------------------------------------------

    def claim(self, delivery_id: int) -> ActionOutcome:
        return self._act(self._deliveries.claim, delivery_id)

    def confirm_pickup(self, delivery_id: int) -> ActionOutcome:
        return self._act(self._deliveries.confirm_pickup, delivery_id)

    def confirm_delivered(self, delivery_id: int) -> ActionOutcome:
        return self._act(self._deliveries.confirm_delivered, delivery_id)

    def _act(
        self, operation: Callable[[Any, Any], Any], delivery_id: int
    ) -> ActionOutcome:
        try:
            operation(delivery_id, self.courier_id)
        except (DeliveryConflict, DeliveryNotFound) as exc:
            logger.info(
                "dashboard.action_conflict",
                action=operation.__name__,
                delivery_id=delivery_id,
                courier_id=self.courier_id,
            )
            self._coordinator.refresh_now()
            return ActionOutcome(ok=False, message=str(exc))
        self._coordinator.refresh_now()
        return ActionOutcome(ok=True)

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def _sync_tracking(self, snapshot: DispatchDashboardDTO) -> None:
        if self._session is None:
            return
        tracked = self._session.active_delivery_id()
        active = snapshot.active

        if active is not None and not self._is_tracking(active.id):
            if active.id == self._denied_delivery:
                return
            try:
                result = self._session.start(active.id, self.courier_id)
            except LocationPermissionDenied as exc:
                self._denied_delivery = active.id
                self.tracking_warning = str(exc)
                return
            self.tracking_warning = result.reason
        elif active is None and tracked is not None:
            self._session.stop()
            self.tracking_warning = None

    def _is_tracking(self, delivery_id: int) -> bool:
        """Whether the session already tracks *delivery_id* for this courier."""
        return (
            self._session.active_delivery_id() == delivery_id
            and self._session.active_courier_id() == self.courier_id
        )


def build_courier_dashboard(
    courier_id: int,
    session: Optional[TrackingSession] = None,
    feed: Optional[IChangeFeed] = None,
    **options: Any,
) -> CourierDashboard:
    """Dashboard wired to the Django repositories and the process change feed.

    The delivery service is built around *session*, so confirming pickup
    publishes a fresh position and finishing the delivery stops tracking.
    """
    from modules.couriers.repositories import CourierDjangoRepository
    from modules.deliveries.repositories import DeliveryDjangoRepository
    from modules.deliveries.services import build_delivery_service
    from modules.dispatch.builder import DispatchViewBuilder
    from shared.infrastructure.feed import change_feed

    return CourierDashboard(
        courier_id,
        DispatchViewBuilder(DeliveryDjangoRepository(), CourierDjangoRepository()),
        build_delivery_service(session),
        change_feed if feed is None else feed,
        session=session,
        **options,
    )
