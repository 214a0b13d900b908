"""DeliveryOrder model: one physical delivery task.

A paid purchase order that requires delivery is split into one
``DeliveryOrder`` per pickup group.  Rows are only ever mutated through
the guarded transitions of ``DeliveryService`` and are never deleted.

The database enforces that ``courier`` is set exactly while the status
is ``accepted``, ``picked_up`` or ``delivered``.
"""

from __future__ import annotations

import secrets
import time
from typing import Any

from django.conf import settings
from django.db import models

from modules.core.models import TimestampedModel
from modules.deliveries.constants import (
    ACTIVE_STATES,
    ASSIGNED_STATES,
    ORDER_NUMBER_MAX_RETRIES,
    ORDER_NUMBER_PREFIX,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    DeliveryStatus,
    StatusUpdateRole,
)
from shared.domain.geo import Coordinate

BASE36_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


class DeliveryOrder(TimestampedModel):
    order_number: models.CharField = models.CharField(
        max_length=24, unique=True, editable=False
    )
    purchase_order: models.ForeignKey = models.ForeignKey(
        "orders.PurchaseOrder",
        on_delete=models.PROTECT,
        related_name="deliveries",
    )
    buyer: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="deliveries_as_buyer",
    )
    seller: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="deliveries_as_seller",
    )
    courier: models.ForeignKey = models.ForeignKey(
        "couriers.Courier",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="deliveries",
    )
    listing_title: models.CharField = models.CharField(max_length=500)

    pickup_address: models.CharField = models.CharField(max_length=255)
    pickup_building_name: models.CharField = models.CharField(
        max_length=120, blank=True, default=""
    )
    pickup_lat: models.FloatField = models.FloatField(null=True, blank=True)
    pickup_lng: models.FloatField = models.FloatField(null=True, blank=True)
    delivery_address: models.CharField = models.CharField(max_length=255)
    delivery_lat: models.FloatField = models.FloatField(null=True, blank=True)
    delivery_lng: models.FloatField = models.FloatField(null=True, blank=True)

    subtotal_cents: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    tax_cents: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    delivery_fee_cents: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )
    total_cents: models.PositiveIntegerField = models.PositiveIntegerField(default=0)

    status: models.CharField = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
    )
    accepted_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    picked_up_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    delivered_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    cancelled_at: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    cancel_reason: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )

    class Meta:
        db_table = "delivery_orders"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["status", "-created_at"], name="do_status_created_idx"
            ),
            models.Index(fields=["courier", "status"], name="do_courier_status_idx"),
            models.Index(fields=["buyer", "status"], name="do_buyer_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(status__in=sorted(ASSIGNED_STATES), courier__isnull=False)
                    | (
                        ~models.Q(status__in=sorted(ASSIGNED_STATES))
                        & models.Q(courier__isnull=True)
                    )
                ),
                name="delivery_orders_courier_matches_status",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATES

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def is_participant(self, user_id: Any) -> bool:
        if user_id is None:
            return False
        return str(user_id) in {
            str(self.buyer_id),
            str(self.seller_id),
            str(self.courier_id),
        }

    def role_of(self, user_id: Any) -> StatusUpdateRole:
        """The capacity in which *user_id* acts on this delivery."""
        if user_id is not None:
            if str(user_id) == str(self.courier_id):
                return StatusUpdateRole.COURIER
            if str(user_id) == str(self.seller_id):
                return StatusUpdateRole.SELLER
            if str(user_id) == str(self.buyer_id):
                return StatusUpdateRole.BUYER
        return StatusUpdateRole.SYSTEM

    def can_see_pickup(self, user_id: Any, is_courier: bool = False) -> bool:
        """Pickup locations are private to the seller and couriers.

        A courier sees them on a pending delivery (to decide whether to
        claim it) and on deliveries assigned to them.
        """
        if user_id is None:
            return False
        if str(user_id) in {str(self.seller_id), str(self.courier_id)}:
            return True
        return is_courier and self.status == DeliveryStatus.PENDING

    # ------------------------------------------------------------------
    # Geography
    # ------------------------------------------------------------------

    @property
    def pickup_point(self) -> Coordinate | None:
        return Coordinate.maybe(self.pickup_lat, self.pickup_lng)

    @property
    def dropoff_point(self) -> Coordinate | None:
        return Coordinate.maybe(self.delivery_lat, self.delivery_lng)

    @property
    def next_stop(self) -> Coordinate | None:
        """Where the courier is heading: pickup until collected, then drop-off."""
        if self.status == DeliveryStatus.ACCEPTED:
            return self.pickup_point
        if self.status == DeliveryStatus.PICKED_UP:
            return self.dropoff_point
        return None

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """``DD`` + base36 millisecond timestamp + 4 random hex chars."""
        stamp = to_base36(int(time.time() * 1000))
        return f"{ORDER_NUMBER_PREFIX}{stamp}{secrets.token_hex(2)}".upper()

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not DeliveryOrder.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class DeliveryStatusUpdate(TimestampedModel):
    """Append-only timeline entry for one delivery status change.

    Written in the same transaction as the guarded transition it
    records.  ``updated_by`` is ``None`` for system changes such as the
    cancellation cascade.
    """

    delivery: models.ForeignKey = models.ForeignKey(
        DeliveryOrder,
        on_delete=models.CASCADE,
        related_name="status_updates",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=DeliveryStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
    )
    updated_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    updated_by_role: models.CharField = models.CharField(
        max_length=10,
        choices=StatusUpdateRole.choices,
        default=StatusUpdateRole.SYSTEM,
    )
    message: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "delivery_status_updates"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["delivery", "created_at"], name="dsu_delivery_created_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.delivery_id}: {self.old_status} -> {self.new_status}"
