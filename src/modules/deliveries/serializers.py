"""Delivery DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.deliveries.constants import PICKUP_FIELDS
from modules.deliveries.models import DeliveryOrder, DeliveryStatusUpdate
from modules.tracking.constants import SampleSource

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CancelDeliverySerializer(serializers.Serializer):
    reason = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=255
    )


class TrackingSampleSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)
    heading = serializers.FloatField(required=False, allow_null=True)
    speed_mps = serializers.FloatField(required=False, allow_null=True)
    accuracy_m = serializers.FloatField(required=False, allow_null=True)
    captured_at = serializers.DateTimeField(required=False)
    source = serializers.ChoiceField(
        choices=SampleSource.choices, default=SampleSource.FOREGROUND
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class DeliveryStatusUpdateSerializer(serializers.ModelSerializer):
    """Read serializer for one entry of a delivery's status timeline."""

    updated_by_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = DeliveryStatusUpdate
        fields = [
            "id",
            "old_status",
            "new_status",
            "updated_by_id",
            "updated_by_role",
            "message",
            "created_at",
        ]
        read_only_fields = fields


class DeliveryOrderSerializer(serializers.ModelSerializer):
    """Read serializer for a delivery with its status timeline.

    Pickup location fields are omitted unless the requesting user may
    see them (see ``DeliveryOrder.can_see_pickup``).
    """

    purchase_order_id = serializers.IntegerField(read_only=True)
    buyer_id = serializers.IntegerField(read_only=True)
    seller_id = serializers.IntegerField(read_only=True)
    courier_id = serializers.IntegerField(read_only=True, allow_null=True)
    status_updates = DeliveryStatusUpdateSerializer(many=True, read_only=True)

    class Meta:
        model = DeliveryOrder
        fields = [
            "id",
            "order_number",
            "purchase_order_id",
            "buyer_id",
            "seller_id",
            "courier_id",
            "status",
            "listing_title",
            "pickup_address",
            "pickup_building_name",
            "pickup_lat",
            "pickup_lng",
            "delivery_address",
            "delivery_lat",
            "delivery_lng",
            "subtotal_cents",
            "tax_cents",
            "delivery_fee_cents",
            "total_cents",
            "accepted_at",
            "picked_up_at",
            "delivered_at",
            "cancelled_at",
            "cancel_reason",
            "status_updates",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def to_representation(self, instance: DeliveryOrder) -> dict:
        data = super().to_representation(instance)
        request = self.context.get("request")
        user = getattr(request, "user", None)
        user_id = getattr(user, "pk", None)
        if not instance.can_see_pickup(
            user_id, is_courier=hasattr(user, "courier_profile")
        ):
            for name in PICKUP_FIELDS:
                data.pop(name, None)
        return data


class DeliveryOrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for delivery lists."""

    courier_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = DeliveryOrder
        fields = [
            "id",
            "order_number",
            "status",
            "listing_title",
            "courier_id",
            "delivery_fee_cents",
            "total_cents",
            "created_at",
        ]
        read_only_fields = fields
