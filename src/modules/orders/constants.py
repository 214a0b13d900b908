"""Purchase order domain constants.

Only the slice of the purchase-order lifecycle the dispatch subsystem
depends on: payment confirmation and cancellation.
"""

from django.db import models


class PurchaseOrderStatus(models.TextChoices):
    PENDING_PAYMENT = "pending_payment", "Pending payment"
    PAID = "paid", "Paid"
    CANCELLED = "cancelled", "Cancelled"


class DeliveryMethod(models.TextChoices):
    DELIVERY = "delivery", "Delivery"
    PICKUP = "pickup", "Pickup"


VALID_TRANSITIONS: dict[str, set[str]] = {
    PurchaseOrderStatus.PENDING_PAYMENT: {
        PurchaseOrderStatus.PAID,
        PurchaseOrderStatus.CANCELLED,
    },
    PurchaseOrderStatus.PAID: {PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[str] = {PurchaseOrderStatus.CANCELLED}

# Local storage key remembering the order a buyer left for the payment provider.
PENDING_ORDER_STORAGE_KEY = "pending_order:{buyer_id}"
