"""Courier DTOs for the Service Layer (Pydantic v2, immutable)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from modules.couriers.constants import CourierStatus, VehicleType

if TYPE_CHECKING:
    from modules.couriers.models import Courier


class RegisterCourierDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    vehicle_type: VehicleType = VehicleType.BIKE


class CourierOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    status: CourierStatus
    vehicle_type: VehicleType
    total_deliveries: int
    total_earnings_cents: int

    @classmethod
    def from_entity(cls, courier: Courier) -> CourierOutputDTO:
        return cls(
            id=courier.pk,
            status=courier.status,
            vehicle_type=courier.vehicle_type,
            total_deliveries=courier.total_deliveries,
            total_earnings_cents=courier.total_earnings_cents,
        )
