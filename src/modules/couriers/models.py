"""Courier (dasher) profile.

The courier's primary key is the user's primary key: a courier *is* a user
acting as a delivery agent.  ``status`` is ``busy`` exactly while the
courier holds a delivery in ``accepted`` or ``picked_up``; the delivery
state machine owns that flag, the courier only toggles offline/online.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from modules.core.models import TimestampedModel
from modules.couriers.constants import CourierStatus, VehicleType


class Courier(TimestampedModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="courier_profile",
    )
    status = models.CharField(
        max_length=10,
        choices=CourierStatus.choices,
        default=CourierStatus.OFFLINE,
    )
    vehicle_type = models.CharField(
        max_length=10,
        choices=VehicleType.choices,
        default=VehicleType.BIKE,
    )
    total_deliveries = models.PositiveIntegerField(default=0)
    total_earnings_cents = models.PositiveBigIntegerField(default=0)

    class Meta:
        db_table = "couriers"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="couriers_status_idx"),
        ]

    @property
    def is_busy(self) -> bool:
        return self.status == CourierStatus.BUSY

    def __str__(self) -> str:
        return f"Courier {self.pk} ({self.status})"
