"""Dispatch view builder.

Composes the courier's two boards from the current store state:

- *available*: pending, unassigned deliveries, newest first, bounded,
  with the distance from the courier to each pickup;
- *mine*: the courier's accepted / picked-up deliveries with the
  distance and ETA to the next stop.

Nothing is cached; every call reads the store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

from django.conf import settings

from modules.couriers.dtos import CourierOutputDTO
from modules.couriers.exceptions import CourierNotFound
from modules.deliveries.constants import ACTIVE_STATES
from modules.dispatch.dtos import DeliveryCardDTO, DispatchDashboardDTO
from shared.domain.geo import (
    distance_between,
    estimate_eta_minutes,
    format_distance_miles,
)

if TYPE_CHECKING:
    from modules.couriers.repositories.interfaces import ICourierRepository
    from modules.deliveries.models import DeliveryOrder
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from shared.domain.geo import Coordinate


class DispatchViewBuilder:
    def __init__(
        self,
        delivery_repository: IDeliveryRepository,
        courier_repository: ICourierRepository,
        limit: Optional[int] = None,
        mph: Optional[float] = None,
    ) -> None:
        self._deliveries = delivery_repository
        self._couriers = courier_repository
        self._limit = limit or settings.DISPATCH_AVAILABLE_LIMIT
        self._mph = mph or settings.DISPATCH_AVERAGE_SPEED_MPH

    def available(
        self, location: Optional[Coordinate] = None, limit: Optional[int] = None
    ) -> List[DeliveryCardDTO]:
        bounded = self._limit if limit is None else max(1, min(limit, self._limit))
        return [
            self._card(delivery, location, delivery.pickup_point)
            for delivery in self._deliveries.list_available(bounded)
        ]

    def mine(
        self, courier_id: Any, location: Optional[Coordinate] = None
    ) -> List[DeliveryCardDTO]:
        return [
            self._card(delivery, location, delivery.next_stop, with_eta=True)
            for delivery in self._deliveries.list_for_courier(courier_id, ACTIVE_STATES)
        ]

    def dashboard(
        self,
        courier_id: Any,
        location: Optional[Coordinate] = None,
        limit: Optional[int] = None,
    ) -> DispatchDashboardDTO:
        courier = self._couriers.get_by_id(courier_id)
        if courier is None:
            raise CourierNotFound(f"Courier {courier_id} not found.")
        mine = self.mine(courier_id, location)
        return DispatchDashboardDTO(
            courier=CourierOutputDTO.from_entity(courier),
            available=self.available(location, limit),
            mine=mine,
            active=mine[0] if mine else None,
        )

    def _card(
        self,
        delivery: DeliveryOrder,
        origin: Optional[Coordinate],
        target: Optional[Coordinate],
        with_eta: bool = False,
    ) -> DeliveryCardDTO:
        miles = distance_between(origin, target)
        eta = None
        if with_eta and miles is not None:
            eta = estimate_eta_minutes(miles, self._mph)
        return DeliveryCardDTO.from_entity(
            delivery,
            distance_miles=None if miles is None else round(miles, 3),
            distance_label=format_distance_miles(miles),
            eta_minutes=eta,
        )
