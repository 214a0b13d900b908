"""Tracking DTOs (Pydantic v2, immutable).

``TrackingSampleDTO`` is what a courier device publishes;
``TrackingSnapshotDTO`` is what observers read back.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from django.utils import timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.tracking.constants import SampleSource

if TYPE_CHECKING:
    from modules.tracking.models import TrackingSample


class TrackingSampleDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    heading: Optional[float] = None
    speed_mps: Optional[float] = None
    accuracy_m: Optional[float] = None
    captured_at: datetime = Field(default_factory=timezone.now)
    source: SampleSource = SampleSource.FOREGROUND

    @field_validator("heading", "speed_mps", "accuracy_m")
    @classmethod
    def finite_or_none(cls, v: Optional[float]) -> Optional[float]:
        if v is None or not math.isfinite(v):
            return None
        return v


class TrackingSnapshotDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    delivery_id: int
    courier_id: int
    lat: float
    lng: float
    heading: Optional[float]
    speed_mps: Optional[float]
    accuracy_m: Optional[float]
    source: str
    captured_at: datetime
    updated_at: datetime
    is_active: bool

    @classmethod
    def from_entity(
        cls, sample: TrackingSample, is_active: bool
    ) -> TrackingSnapshotDTO:
        return cls(
            delivery_id=sample.delivery_id,
            courier_id=sample.courier_id,
            lat=sample.lat,
            lng=sample.lng,
            heading=sample.heading,
            speed_mps=sample.speed_mps,
            accuracy_m=sample.accuracy_m,
            source=sample.source,
            captured_at=sample.captured_at,
            updated_at=sample.updated_at,
            is_active=is_active,
        )
