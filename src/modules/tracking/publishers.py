"""Where a tracking session sends its samples."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from modules.tracking.dtos import TrackingSampleDTO
    from modules.tracking.services import TrackingService


class TrackingPublisher(Protocol):
    def publish(
        self, delivery_id: Any, courier_id: Any, sample: TrackingSampleDTO
    ) -> bool:
        """Store the sample; ``False`` if a newer one is already stored.

        Raises on failure.
        """


class ServiceTrackingPublisher:
    """Publishes straight into the in-process ``TrackingService``."""

    def __init__(self, service: TrackingService) -> None:
        self._service = service

    def publish(
        self, delivery_id: Any, courier_id: Any, sample: TrackingSampleDTO
    ) -> bool:
        stored = self._service.record_sample(delivery_id, courier_id, sample)
        return stored is not None
