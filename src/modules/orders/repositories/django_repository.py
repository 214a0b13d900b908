"""Django ORM implementation of the PurchaseOrder repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from modules.orders.constants import PurchaseOrderStatus
from modules.orders.models import PurchaseOrder, PurchaseOrderItem
from modules.orders.repositories.interfaces import IPurchaseOrderRepository

logger = structlog.get_logger(__name__)


class PurchaseOrderDjangoRepository(IPurchaseOrderRepository):
    """Concrete PurchaseOrder repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> PurchaseOrder:
        order = PurchaseOrder(
            buyer_id=data["buyer_id"],
            delivery_method=data["delivery_method"],
            delivery_address=data.get("delivery_address") or "",
            delivery_lat=data.get("delivery_lat"),
            delivery_lng=data.get("delivery_lng"),
            tax_cents=data.get("tax_cents", 0),
            delivery_fee_cents=data.get("delivery_fee_cents", 0),
        )
        order.save()

        subtotal = 0
        items = data.get("items", [])
        for item_data in items:
            item = PurchaseOrderItem(order=order, **item_data)
            item.save()
            subtotal += item.line_total_cents

        order.subtotal_cents = subtotal
        order.total_cents = subtotal + order.tax_cents + order.delivery_fee_cents
        order.save(update_fields=["subtotal_cents", "total_cents"])

        logger.info(
            "purchase_order.created",
            order_id=order.pk,
            item_count=len(items),
            total_cents=order.total_cents,
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: Any) -> Optional[PurchaseOrder]:
        try:
            return PurchaseOrder.objects.prefetch_related("items").filter(pk=id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    def get_for_buyer(self, order_id: Any, buyer_id: Any) -> Optional[PurchaseOrder]:
        try:
            return (
                PurchaseOrder.objects.prefetch_related("items")
                .filter(pk=order_id, buyer_id=buyer_id)
                .first()
            )
        except (ValueError, TypeError, ValidationError):
            return None

    def latest_pending_for_buyer(self, buyer_id: Any) -> Optional[PurchaseOrder]:
        return (
            PurchaseOrder.objects.filter(
                buyer_id=buyer_id, status=PurchaseOrderStatus.PENDING_PAYMENT
            )
            .order_by("-created_at", "-id")
            .first()
        )

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[PurchaseOrder]:
        queryset = PurchaseOrder.objects.prefetch_related("items")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: PurchaseOrder) -> PurchaseOrder:
        entity.save()
        logger.info("purchase_order.saved", order_id=entity.pk)
        return entity

    def transition(
        self, order_id: Any, expected_status: str, changes: Dict[str, Any]
    ) -> bool:
        updated = PurchaseOrder.objects.filter(
            pk=order_id, status=expected_status
        ).update(updated_at=timezone.now(), **changes)
        return bool(updated)
