"""Read models served to couriers and buyers (Pydantic v2, immutable)."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, ConfigDict

from modules.couriers.dtos import CourierOutputDTO
from modules.tracking.dtos import TrackingSnapshotDTO

if TYPE_CHECKING:
    from modules.deliveries.models import DeliveryOrder, DeliveryStatusUpdate


class DeliveryCardDTO(BaseModel):
    """One delivery as listed on the dispatch board.

    ``distance_miles`` is ``None`` when either endpoint is unknown; it is
    never reported as zero in that case.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    order_number: str
    status: str
    listing_title: str
    pickup_address: str
    pickup_building_name: str
    delivery_address: str
    delivery_fee_cents: int
    total_cents: int
    created_at: datetime
    distance_miles: Optional[float] = None
    distance_label: str = "N/A"
    eta_minutes: Optional[int] = None

    @classmethod
    def from_entity(
        cls,
        delivery: DeliveryOrder,
        distance_miles: Optional[float],
        distance_label: str,
        eta_minutes: Optional[int] = None,
    ) -> DeliveryCardDTO:
        return cls(
            id=delivery.pk,
            order_number=delivery.order_number,
            status=delivery.status,
            listing_title=delivery.listing_title,
            pickup_address=delivery.pickup_address,
            pickup_building_name=delivery.pickup_building_name,
            delivery_address=delivery.delivery_address,
            delivery_fee_cents=delivery.delivery_fee_cents,
            total_cents=delivery.total_cents,
            created_at=delivery.created_at,
            distance_miles=distance_miles,
            distance_label=distance_label,
            eta_minutes=eta_minutes,
        )


class DispatchDashboardDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    courier: CourierOutputDTO
    available: List[DeliveryCardDTO]
    mine: List[DeliveryCardDTO]
    active: Optional[DeliveryCardDTO] = None


class StatusUpdateDTO(BaseModel):
    """One step of the buyer-facing status timeline."""

    model_config = ConfigDict(frozen=True)

    old_status: Optional[str] = None
    new_status: str
    updated_by_role: str
    message: str = ""
    created_at: datetime

    @classmethod
    def from_entity(cls, update: DeliveryStatusUpdate) -> StatusUpdateDTO:
        return cls(
            old_status=update.old_status,
            new_status=update.new_status,
            updated_by_role=update.updated_by_role,
            message=update.message,
            created_at=update.created_at,
        )


class BuyerTrackingDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    delivery_id: int
    order_number: str
    status: str
    tracking: Optional[TrackingSnapshotDTO] = None
    is_live: bool = False
    distance_miles: Optional[float] = None
    distance_label: str = "N/A"
    eta_minutes: Optional[int] = None
    timeline: List[StatusUpdateDTO] = []
