"""Purchase order repository interface.

The Service Layer depends exclusively on this contract (DIP).  Status
changes go through ``transition``, a guarded write that reports whether
the row was still in the expected status.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import PurchaseOrder


class IPurchaseOrderRepository(IRepository["PurchaseOrder"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> PurchaseOrder:
        """Create an order with its items atomically.

        ``data`` must include ``buyer_id`` and ``items`` (dicts with
        ``seller_id``, ``title``, ``unit_price_cents``, ``quantity`` and
        the pickup snapshot).
        """

    @abstractmethod
    def get_by_id(self, id: Any) -> Optional[PurchaseOrder]:
        """Retrieve an order with its items prefetched."""

    @abstractmethod
    def get_for_buyer(self, order_id: Any, buyer_id: Any) -> Optional[PurchaseOrder]:
        """Retrieve an order only if it belongs to *buyer_id*."""

    @abstractmethod
    def latest_pending_for_buyer(self, buyer_id: Any) -> Optional[PurchaseOrder]:
        """Most recent ``pending_payment`` order of a buyer."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[PurchaseOrder]:
        """List orders with optional filters."""

    @abstractmethod
    def transition(
        self, order_id: Any, expected_status: str, changes: Dict[str, Any]
    ) -> bool:
        """Apply *changes* only if the order is still in *expected_status*."""
