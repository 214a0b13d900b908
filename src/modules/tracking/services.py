"""Server-side tracking service.

Accepts samples from the assigned courier while a delivery is in
progress and serves the latest one to the buyer and courier.  A
delivery's sample is cleared once it reaches a terminal status.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import structlog

from modules.deliveries.exceptions import (
    DeliveryConflict,
    DeliveryNotFound,
    NotDeliveryParticipant,
)
from modules.tracking.constants import TRACKABLE_STATES
from modules.tracking.dtos import TrackingSnapshotDTO
from modules.tracking.exceptions import TrackingUnavailable

if TYPE_CHECKING:
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from modules.tracking.dtos import TrackingSampleDTO
    from modules.tracking.models import TrackingSample
    from modules.tracking.repositories.interfaces import ITrackingRepository

logger = structlog.get_logger(__name__)


class TrackingService:
    def __init__(
        self,
        tracking_repository: ITrackingRepository,
        delivery_repository: IDeliveryRepository,
    ) -> None:
        self._repo = tracking_repository
        self._deliveries = delivery_repository

    def record_sample(
        self, delivery_id: Any, courier_id: Any, sample: TrackingSampleDTO
    ) -> Optional[TrackingSample]:
        """Overwrite the delivery's latest position.

        Returns ``None`` when the sample is older than the stored one.

        Raises:
            DeliveryNotFound: the delivery does not exist.
            DeliveryConflict: the delivery is not in progress with this courier.
        """
        delivery = self._deliveries.get_by_id(delivery_id)
        if delivery is None:
            raise DeliveryNotFound(f"Delivery {delivery_id} not found.")
        if delivery.status not in TRACKABLE_STATES or str(delivery.courier_id) != str(
            courier_id
        ):
            logger.info(
                "tracking.sample_rejected",
                delivery_id=delivery_id,
                courier_id=courier_id,
                status=delivery.status,
            )
            raise DeliveryConflict("This delivery is not in progress with you.")

        stored = self._repo.upsert(
            delivery.pk,
            delivery.courier_id,
            {
                "lat": sample.lat,
                "lng": sample.lng,
                "heading": sample.heading,
                "speed_mps": sample.speed_mps,
                "accuracy_m": sample.accuracy_m,
                "source": sample.source,
                "captured_at": sample.captured_at,
            },
        )
        if stored is not None:
            logger.debug(
                "tracking.sample_recorded",
                delivery_id=delivery.pk,
                source=sample.source,
            )
        return stored

    def latest_sample(
        self, delivery_id: Any, viewer_id: Optional[Any] = None
    ) -> TrackingSnapshotDTO:
        """Latest position; ``is_active`` is false once the delivery ended.

        Raises:
            DeliveryNotFound: the delivery does not exist.
            NotDeliveryParticipant: *viewer_id* is given and is neither the
                buyer nor the courier.
            TrackingUnavailable: no sample has been recorded.
        """
        delivery = self._deliveries.get_by_id(delivery_id)
        if delivery is None:
            raise DeliveryNotFound(f"Delivery {delivery_id} not found.")
        if viewer_id is not None and str(viewer_id) not in {
            str(delivery.buyer_id),
            str(delivery.courier_id),
        }:
            raise NotDeliveryParticipant(
                "Only the buyer and courier can track a delivery."
            )

        sample = self._repo.get_by_id(delivery.pk)
        if sample is None:
            raise TrackingUnavailable(f"No position yet for delivery {delivery_id}.")
        return TrackingSnapshotDTO.from_entity(
            sample, is_active=delivery.status in TRACKABLE_STATES
        )

    def clear(self, delivery_id: Any) -> bool:
        cleared = self._repo.delete(delivery_id)
        if cleared:
            logger.info("tracking.cleared", delivery_id=delivery_id)
        return cleared
