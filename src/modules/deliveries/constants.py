"""Delivery domain constants.

Status choices and the legal transitions of the delivery state machine.
"""

from django.db import models


class DeliveryStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    PICKED_UP = "picked_up", "Picked up"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class StatusUpdateRole(models.TextChoices):
    BUYER = "buyer", "Buyer"
    SELLER = "seller", "Seller"
    COURIER = "courier", "Courier"
    SYSTEM = "system", "System"


VALID_TRANSITIONS: dict[str, set[str]] = {
    DeliveryStatus.PENDING: {DeliveryStatus.ACCEPTED, DeliveryStatus.CANCELLED},
    DeliveryStatus.ACCEPTED: {DeliveryStatus.PICKED_UP, DeliveryStatus.CANCELLED},
    DeliveryStatus.PICKED_UP: {DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED},
    DeliveryStatus.DELIVERED: set(),
    DeliveryStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[str] = {DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED}

# A courier holding a delivery in one of these is busy.
ACTIVE_STATES: set[str] = {DeliveryStatus.ACCEPTED, DeliveryStatus.PICKED_UP}

# Statuses in which the delivery carries a courier (and no others do).
ASSIGNED_STATES: set[str] = ACTIVE_STATES | {DeliveryStatus.DELIVERED}

ORDER_NUMBER_PREFIX = "DD"
ORDER_NUMBER_MAX_RETRIES = 5

NO_LONGER_AVAILABLE = (
    "This delivery is no longer available. It may have been taken by another courier."
)

# Pickup location fields visible only to the seller and couriers.
PICKUP_FIELDS = ("pickup_address", "pickup_building_name", "pickup_lat", "pickup_lng")
