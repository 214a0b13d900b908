"""PurchaseOrder and PurchaseOrderItem models.

A purchase order is what the buyer paid for.  When it requires delivery
it is split into one ``DeliveryOrder`` per pickup group once payment is
confirmed; the purchase order itself never carries a courier.

Money is stored as integer cents.  Item pickup data is a snapshot of the
listing's private pickup location at checkout time.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import TimestampedModel
from modules.orders.constants import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    DeliveryMethod,
    PurchaseOrderStatus,
)
from shared.domain.geo import Coordinate


class PurchaseOrder(TimestampedModel):
    buyer: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="purchase_orders",
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=PurchaseOrderStatus.choices,
        default=PurchaseOrderStatus.PENDING_PAYMENT,
    )
    delivery_method: models.CharField = models.CharField(
        max_length=10,
        choices=DeliveryMethod.choices,
        default=DeliveryMethod.DELIVERY,
    )
    delivery_address: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )
    delivery_lat: models.FloatField = models.FloatField(null=True, blank=True)
    delivery_lng: models.FloatField = models.FloatField(null=True, blank=True)
    subtotal_cents: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    tax_cents: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    delivery_fee_cents: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )
    total_cents: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    paid_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    cancelled_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "purchase_orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["buyer", "status", "-created_at"],
                name="po_buyer_status_created_idx",
            ),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def requires_delivery(self) -> bool:
        return self.delivery_method == DeliveryMethod.DELIVERY

    @property
    def dropoff_point(self) -> Coordinate | None:
        return Coordinate.maybe(self.delivery_lat, self.delivery_lng)

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __str__(self) -> str:
        return f"PurchaseOrder {self.pk} ({self.status})"


class PurchaseOrderItem(TimestampedModel):
    """One listing line of a purchase order, with its pickup snapshot."""

    order: models.ForeignKey = models.ForeignKey(
        "orders.PurchaseOrder",
        on_delete=models.CASCADE,
        related_name="items",
    )
    seller: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="sold_items",
    )
    title: models.CharField = models.CharField(max_length=200)
    unit_price_cents: models.PositiveIntegerField = models.PositiveIntegerField()
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(default=1)
    pickup_address: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )
    pickup_building_name: models.CharField = models.CharField(
        max_length=120, blank=True, default=""
    )
    pickup_lat: models.FloatField = models.FloatField(null=True, blank=True)
    pickup_lng: models.FloatField = models.FloatField(null=True, blank=True)

    class Meta:
        db_table = "purchase_order_items"
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="po_items_quantity_positive",
            ),
        ]

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    @property
    def has_pickup_location(self) -> bool:
        return bool(self.pickup_address) and None not in (
            self.pickup_lat,
            self.pickup_lng,
        )

    def __str__(self) -> str:
        return f"{self.title} x{self.quantity}"
