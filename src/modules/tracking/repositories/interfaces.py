"""Tracking repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.tracking.models import TrackingSample


class ITrackingRepository(IRepository["TrackingSample"]):
    @abstractmethod
    def get_by_id(self, id: Any) -> Optional[TrackingSample]:
        """Latest sample for a delivery ID."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[TrackingSample]:
        """List samples with optional filters."""

    @abstractmethod
    def upsert(
        self, delivery_id: Any, courier_id: Any, values: Dict[str, Any]
    ) -> Optional[TrackingSample]:
        """Overwrite the stored sample; ``None`` if *values* is older than it."""

    @abstractmethod
    def delete(self, delivery_id: Any) -> bool:
        """Drop the delivery's sample; ``False`` if there was none."""
