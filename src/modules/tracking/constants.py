"""Tracking domain constants."""

from django.db import models

from modules.deliveries.constants import ACTIVE_STATES


class SampleSource(models.TextChoices):
    FOREGROUND = "foreground", "Foreground watch"
    BACKGROUND = "background", "Background task"
    MANUAL = "manual", "Manual sync"


# A delivery accepts samples only while a courier is on the way.
TRACKABLE_STATES: set[str] = set(ACTIVE_STATES)
