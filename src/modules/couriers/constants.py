"""Courier domain constants."""

from django.db import models


class CourierStatus(models.TextChoices):
    OFFLINE = "offline", "Offline"
    ONLINE = "online", "Online"
    BUSY = "busy", "Busy"


class VehicleType(models.TextChoices):
    WALK = "walk", "On foot"
    BIKE = "bike", "Bike"
    SCOOTER = "scooter", "Scooter"
    CAR = "car", "Car"


# Statuses a courier may pick by hand; BUSY is owned by the delivery lifecycle.
AVAILABILITY_TOGGLE: dict[str, str] = {
    CourierStatus.OFFLINE: CourierStatus.ONLINE,
    CourierStatus.ONLINE: CourierStatus.OFFLINE,
}
