"""Delivery lifecycle hooks that keep tracking in step with the delivery.

``TrackingCleanupHooks`` runs server-side and drops the tracking row of
a finished delivery.  ``SessionTrackingHooks`` runs next to a courier's
``TrackingSession``: it seeds a fresh sample right after pickup and
stops the session when its delivery ends.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modules.deliveries.models import DeliveryOrder
    from modules.tracking.services import TrackingService
    from modules.tracking.session import TrackingSession


class TrackingCleanupHooks:
    def __init__(self, service: TrackingService) -> None:
        self._service = service

    def after_pickup(self, delivery: DeliveryOrder) -> None:
        pass

    def after_finished(self, delivery: DeliveryOrder) -> None:
        self._service.clear(delivery.pk)


class SessionTrackingHooks:
    def __init__(self, session: TrackingSession) -> None:
        self._session = session

    def after_pickup(self, delivery: DeliveryOrder) -> None:
        self._session.sync_once(delivery.pk, delivery.courier_id)

    def after_finished(self, delivery: DeliveryOrder) -> None:
        if self._session.active_delivery_id() == delivery.pk:
            self._session.stop()
