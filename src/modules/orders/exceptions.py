"""Purchase order domain exceptions.

Raised by the Service Layer; the API layer translates them into HTTP
responses.
"""

from __future__ import annotations


class PurchaseOrderNotFound(Exception):
    """The order does not exist or does not belong to the caller."""


class InvalidPurchaseOrderStatus(Exception):
    """The order is not in a status that allows the requested transition."""


class NoPendingOrder(Exception):
    """No source could identify the order a payment handoff refers to."""
