"""Delivery domain exceptions.

Every precondition violation of the state machine is a
``DeliveryConflict``: the caller refreshes its view and tells the user
the action no longer applies.
"""

from __future__ import annotations


class DeliveryNotFound(Exception):
    """The delivery order does not exist."""


class DeliveryConflict(Exception):
    """A transition's precondition no longer holds."""


class NotDeliveryParticipant(Exception):
    """The actor is neither buyer, seller nor assigned courier."""


class MissingPickupLocation(Exception):
    """An item of the purchase order has no usable pickup location."""


class NotADeliveryOrder(Exception):
    """The purchase order is a pickup order and has nothing to dispatch."""
