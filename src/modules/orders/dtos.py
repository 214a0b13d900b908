"""Purchase order DTOs for the Service Layer.

Pydantic v2, immutable (``frozen=True``).  Pricing and catalog lookups
happen upstream; the DTO carries the already-priced lines.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import DeliveryMethod


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class PlaceOrderItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    seller_id: int
    title: str = Field(min_length=1, max_length=200)
    unit_price_cents: int = Field(ge=0)
    quantity: int = Field(ge=1)
    pickup_address: str = ""
    pickup_building_name: str = ""
    pickup_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    pickup_lng: Optional[float] = Field(default=None, ge=-180, le=180)


class PlaceOrderDTO(BaseModel):
    """A priced cart on its way to the payment provider."""

    model_config = ConfigDict(frozen=True)

    buyer_id: int
    delivery_method: DeliveryMethod = DeliveryMethod.DELIVERY
    delivery_address: str = ""
    delivery_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    delivery_lng: Optional[float] = Field(default=None, ge=-180, le=180)
    tax_cents: int = Field(default=0, ge=0)
    delivery_fee_cents: int = Field(default=0, ge=0)
    items: List[PlaceOrderItemDTO]

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[PlaceOrderItemDTO]
    ) -> List[PlaceOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def delivery_needs_address(self):
        is_delivery = self.delivery_method == DeliveryMethod.DELIVERY
        if is_delivery and not self.delivery_address:
            raise ValueError("Delivery orders need a delivery address.")
        if self.delivery_method == DeliveryMethod.PICKUP and self.delivery_fee_cents:
            raise ValueError("Pickup orders cannot carry a delivery fee.")
        return self

