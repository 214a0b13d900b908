"""Purchase order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.deliveries.serializers import DeliveryOrderListSerializer
from modules.orders.constants import DeliveryMethod
from modules.orders.models import PurchaseOrder, PurchaseOrderItem

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class PlaceOrderItemSerializer(serializers.Serializer):
    seller_id = serializers.IntegerField(min_value=1)
    title = serializers.CharField(max_length=200)
    unit_price_cents = serializers.IntegerField(min_value=0)
    quantity = serializers.IntegerField(min_value=1, default=1)
    pickup_address = serializers.CharField(
        required=False, default="", allow_blank=True
    )
    pickup_building_name = serializers.CharField(
        required=False, default="", allow_blank=True
    )
    pickup_lat = serializers.FloatField(
        required=False, allow_null=True, default=None, min_value=-90, max_value=90
    )
    pickup_lng = serializers.FloatField(
        required=False, allow_null=True, default=None, min_value=-180, max_value=180
    )


class PlaceOrderSerializer(serializers.Serializer):
    """Validates the checkout payload."""

    delivery_method = serializers.ChoiceField(
        choices=DeliveryMethod.choices, default=DeliveryMethod.DELIVERY
    )
    delivery_address = serializers.CharField(
        required=False, default="", allow_blank=True
    )
    delivery_lat = serializers.FloatField(
        required=False, allow_null=True, default=None, min_value=-90, max_value=90
    )
    delivery_lng = serializers.FloatField(
        required=False, allow_null=True, default=None, min_value=-180, max_value=180
    )
    tax_cents = serializers.IntegerField(min_value=0, default=0)
    delivery_fee_cents = serializers.IntegerField(min_value=0, default=0)
    items = PlaceOrderItemSerializer(many=True, allow_empty=False)


class ResolveHandoffSerializer(serializers.Serializer):
    """Where a returning buyer's client found the order id, if anywhere."""

    order_id = serializers.CharField(required=False, allow_blank=True)
    navigation_order_id = serializers.CharField(required=False, allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    """Order line as shown to the buyer; the pickup snapshot stays private."""

    seller_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = [
            "id",
            "seller_id",
            "title",
            "unit_price_cents",
            "quantity",
        ]
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    """Full read serializer, with lines and any delivery rows."""

    buyer_id = serializers.IntegerField(read_only=True)
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    deliveries = DeliveryOrderListSerializer(many=True, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "id",
            "buyer_id",
            "status",
            "delivery_method",
            "delivery_address",
            "delivery_lat",
            "delivery_lng",
            "subtotal_cents",
            "tax_cents",
            "delivery_fee_cents",
            "total_cents",
            "paid_at",
            "cancelled_at",
            "items",
            "deliveries",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PurchaseOrderListSerializer(serializers.ModelSerializer):
    class Meta:
        model = PurchaseOrder
        fields = [
            "id",
            "status",
            "delivery_method",
            "total_cents",
            "created_at",
        ]
        read_only_fields = fields
