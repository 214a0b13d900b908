"""TrackingSample: the latest known courier position for a delivery.

One row per delivery, overwritten in place on every accepted sample.
The row is deleted once the delivery reaches a terminal status.
"""

from __future__ import annotations

from django.db import models

from modules.tracking.constants import SampleSource
from shared.domain.geo import Coordinate


class TrackingSample(models.Model):
    delivery = models.OneToOneField(
        "deliveries.DeliveryOrder",
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="tracking",
    )
    courier = models.ForeignKey(
        "couriers.Courier",
        on_delete=models.CASCADE,
        related_name="tracking_samples",
    )
    lat = models.FloatField()
    lng = models.FloatField()
    heading = models.FloatField(null=True, blank=True)
    speed_mps = models.FloatField(null=True, blank=True)
    accuracy_m = models.FloatField(null=True, blank=True)
    source = models.CharField(
        max_length=12, choices=SampleSource.choices, default=SampleSource.FOREGROUND
    )
    captured_at = models.DateTimeField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "delivery_tracking"
        indexes = [
            models.Index(fields=["courier"], name="dt_courier_idx"),
            models.Index(fields=["-updated_at"], name="dt_updated_idx"),
        ]

    @property
    def point(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    def __str__(self) -> str:
        return f"Tracking for delivery {self.delivery_id}"
