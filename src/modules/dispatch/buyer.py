"""Buyer-facing live view of one delivery.

Watches the delivery row and its tracking row, and on every (debounced)
change re-reads both.  Shows the status and its timeline, the courier's
latest position while the delivery is in progress, and the distance and
ETA from the courier to the drop-off.  Once the delivery is terminal the
position is reported as inactive.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional

from django.conf import settings

from modules.deliveries.exceptions import DeliveryNotFound, NotDeliveryParticipant
from modules.dispatch.coordinator import RealtimeSyncCoordinator
from modules.dispatch.dtos import BuyerTrackingDTO, StatusUpdateDTO
from modules.tracking.exceptions import TrackingUnavailable
from shared.domain.geo import (
    Coordinate,
    distance_between,
    estimate_eta_minutes,
    format_distance_miles,
)

if TYPE_CHECKING:
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from modules.tracking.services import TrackingService
    from shared.domain.feed import IChangeFeed


class BuyerTrackingView:
    def __init__(
        self,
        delivery_id: int,
        buyer_id: int,
        deliveries: IDeliveryRepository,
        tracking: TrackingService,
        feed: IChangeFeed,
        on_update: Optional[Callable[[BuyerTrackingDTO], None]] = None,
        mph: Optional[float] = None,
        **coordinator_options: Any,
    ) -> None:
        self.delivery_id = delivery_id
        self.buyer_id = buyer_id
        self._deliveries = deliveries
        self._tracking = tracking
        self._on_update = on_update
        self._mph = mph or settings.DISPATCH_AVERAGE_SPEED_MPH
        self._coordinator = RealtimeSyncCoordinator(
            feed, self.refresh, name="buyer_tracking", **coordinator_options
        )
        self.snapshot: Optional[BuyerTrackingDTO] = None

    @property
    def is_live(self) -> bool:
        return self._coordinator.is_live

    def open(self) -> BuyerTrackingDTO:
        self._coordinator.watch_delivery(self.delivery_id)
        self._coordinator.watch_tracking(self.delivery_id)
        return self._coordinator.refresh_now()

    def refresh(self) -> BuyerTrackingDTO:
        delivery = self._deliveries.get_by_id(self.delivery_id)
        if delivery is None:
            raise DeliveryNotFound(f"Delivery {self.delivery_id} not found.")
        if str(delivery.buyer_id) != str(self.buyer_id):
            raise NotDeliveryParticipant("Only the buyer can follow this delivery.")

        try:
            tracking = self._tracking.latest_sample(delivery.pk)
        except TrackingUnavailable:
            tracking = None

        miles = None
        if tracking is not None and tracking.is_active:
            miles = distance_between(
                Coordinate(tracking.lat, tracking.lng), delivery.dropoff_point
            )

        snapshot = BuyerTrackingDTO(
            delivery_id=delivery.pk,
            order_number=delivery.order_number,
            status=delivery.status,
            tracking=tracking,
            is_live=self._coordinator.is_live,
            distance_miles=None if miles is None else round(miles, 3),
            distance_label=format_distance_miles(miles),
            eta_minutes=(
                None if miles is None else estimate_eta_minutes(miles, self._mph)
            ),
            timeline=[
                StatusUpdateDTO.from_entity(update)
                for update in self._deliveries.list_status_updates(delivery.pk)
            ],
        )
        self.snapshot = snapshot
        if self._on_update is not None:
            self._on_update(snapshot)
        return snapshot

    def close(self) -> None:
        self._coordinator.close()

    def __enter__(self) -> BuyerTrackingView:
        self.open()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
