"""Delivery repository interface.

All status changes go through ``transition``: a single conditional
update whose ``expected`` predicate is evaluated by the database.  The
boolean result is the only signal of whether the caller won.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.deliveries.models import DeliveryOrder, DeliveryStatusUpdate


class IDeliveryRepository(IRepository["DeliveryOrder"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> DeliveryOrder:
        """Insert a new ``pending`` delivery."""

    @abstractmethod
    def get_by_id(self, id: Any) -> Optional[DeliveryOrder]:
        """Retrieve a delivery by ID."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[DeliveryOrder]:
        """List deliveries, newest first."""

    @abstractmethod
    def list_for_purchase_order(self, order_id: Any) -> List[DeliveryOrder]:
        """Deliveries split from one purchase order, in creation order."""

    @abstractmethod
    def list_available(self, limit: int) -> List[DeliveryOrder]:
        """Pending, unassigned deliveries, newest first, at most *limit*."""

    @abstractmethod
    def list_for_courier(
        self, courier_id: Any, statuses: Iterable[str]
    ) -> List[DeliveryOrder]:
        """A courier's deliveries in *statuses*, newest first."""

    @abstractmethod
    def list_status_updates(self, delivery_id: Any) -> List[DeliveryStatusUpdate]:
        """The delivery's status timeline, oldest first."""

    @abstractmethod
    def has_active_for_courier(self, courier_id: Any) -> bool:
        """Whether the courier still holds an accepted or picked-up delivery."""

    @abstractmethod
    def list_stranded(self) -> List[DeliveryOrder]:
        """Non-terminal deliveries whose purchase order was cancelled."""

    @abstractmethod
    def transition(
        self,
        delivery_id: Any,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
        *,
        actor_id: Any = None,
        role: str = "system",
        message: str = "",
    ) -> bool:
        """Apply *changes* only if the row still matches *expected*.

        A status change is recorded on the delivery's timeline, attributed
        to *actor_id* acting as *role*, in the same transaction.
        """
