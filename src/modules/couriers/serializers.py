"""Courier DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.couriers.constants import VehicleType
from modules.couriers.models import Courier


class RegisterCourierSerializer(serializers.Serializer):
    vehicle_type = serializers.ChoiceField(
        choices=VehicleType.choices, default=VehicleType.BIKE
    )


class CourierSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source="pk", read_only=True)

    class Meta:
        model = Courier
        fields = [
            "id",
            "status",
            "vehicle_type",
            "total_deliveries",
            "total_earnings_cents",
            "updated_at",
        ]
        read_only_fields = fields
