"""Courier repository interface.

Status writes are guarded: each method states the status it expects the
row to be in and reports whether the write happened.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.couriers.models import Courier


class ICourierRepository(IRepository["Courier"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Courier:
        """Create a courier profile for ``data["user_id"]``."""

    @abstractmethod
    def get_by_id(self, id: Any) -> Optional[Courier]:
        """Retrieve a courier by user ID."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Courier]:
        """List couriers with optional filters."""

    @abstractmethod
    def set_status(self, courier_id: Any, expected: str, new: str) -> bool:
        """Move ``expected`` -> ``new``; ``False`` on a stale ``expected``."""

    @abstractmethod
    def mark_busy(self, courier_id: Any) -> bool:
        """Flag an online courier busy; ``False`` if missing, offline or busy."""

    @abstractmethod
    def release(self, courier_id: Any) -> bool:
        """Move a busy courier back online; ``False`` if not busy."""

    @abstractmethod
    def credit_delivery(self, courier_id: Any, fee_cents: int, release: bool) -> bool:
        """Add one delivery and its fee to the courier's totals."""
