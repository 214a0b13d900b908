"""Splitting a purchase order into pickup groups.

Items are grouped by ``(seller, pickup address, building, lat, lng)``;
each group becomes one delivery.  Tax is shared in proportion to each
group's subtotal and the delivery fee is shared evenly, both rounded
down, with the last group absorbing the remainders so the parts always
add up to the order's totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import groupby
from typing import Any, Iterable, List, Tuple

from modules.deliveries.exceptions import MissingPickupLocation

GroupKey = Tuple[Any, str, str, float, float]


@dataclass(frozen=True)
class PickupGroup:
    seller_id: Any
    pickup_address: str
    pickup_building_name: str
    pickup_lat: float
    pickup_lng: float
    titles: Tuple[str, ...]
    subtotal_cents: int

    @property
    def listing_title(self) -> str:
        return ", ".join(self.titles) or "Order items"


@dataclass(frozen=True)
class GroupAllocation:
    group: PickupGroup
    tax_cents: int
    delivery_fee_cents: int

    @property
    def total_cents(self) -> int:
        return self.group.subtotal_cents + self.tax_cents + self.delivery_fee_cents


def _group_key(item: Any) -> GroupKey:
    return (
        item.seller_id,
        item.pickup_address,
        item.pickup_building_name or "",
        item.pickup_lat,
        item.pickup_lng,
    )


def group_items(items: Iterable[Any]) -> List[PickupGroup]:
    """Group order items by pickup location, in a stable order.

    Raises:
        MissingPickupLocation: an item has no address or coordinates.
    """
    items = sorted(items, key=lambda item: item.pk or 0)
    missing = [item.title for item in items if not item.has_pickup_location]
    if missing:
        raise MissingPickupLocation(
            "One or more listings are missing pickup locations: " + ", ".join(missing)
        )

    groups = []
    for key, members in groupby(sorted(items, key=_group_key), key=_group_key):
        members = list(members)
        seller_id, address, building, lat, lng = key
        groups.append(
            PickupGroup(
                seller_id=seller_id,
                pickup_address=address,
                pickup_building_name=building,
                pickup_lat=lat,
                pickup_lng=lng,
                titles=tuple(item.title for item in members),
                subtotal_cents=sum(item.line_total_cents for item in members),
            )
        )
    return groups


def allocate(
    groups: List[PickupGroup], tax_cents: int, delivery_fee_cents: int
) -> List[GroupAllocation]:
    if not groups:
        return []

    total_subtotal = sum(group.subtotal_cents for group in groups)
    count = len(groups)
    allocated_tax = 0
    allocated_fee = 0
    result = []

    for index, group in enumerate(groups):
        if index < count - 1:
            if total_subtotal > 0:
                tax = (tax_cents * group.subtotal_cents) // total_subtotal
            else:
                tax = 0
            fee = delivery_fee_cents // count
        else:
            tax = tax_cents - allocated_tax
            fee = delivery_fee_cents - allocated_fee

        allocated_tax += tax
        allocated_fee += fee
        result.append(
            GroupAllocation(group=group, tax_cents=tax, delivery_fee_cents=fee)
        )
    return result
