"""Django ORM implementation of the Delivery repository.

Writes are guarded ``UPDATE ... WHERE`` statements and are announced on
the ``delivery_orders`` change feed after commit.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.core.repositories.conditional import ChangeFeedRepositoryMixin
from modules.deliveries.constants import (
    ACTIVE_STATES,
    TERMINAL_STATES,
    DeliveryStatus,
    StatusUpdateRole,
)
from modules.deliveries.models import DeliveryOrder, DeliveryStatusUpdate
from modules.deliveries.repositories.interfaces import IDeliveryRepository
from modules.orders.constants import PurchaseOrderStatus
from shared.domain.feed import ChangeOperation

logger = structlog.get_logger(__name__)


class DeliveryDjangoRepository(ChangeFeedRepositoryMixin, IDeliveryRepository):
    """Concrete Delivery repository backed by Django ORM."""

    model = DeliveryOrder
    feed_table = "delivery_orders"

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> DeliveryOrder:
        delivery = DeliveryOrder(status=DeliveryStatus.PENDING, **data)
        delivery.save(force_insert=True)
        self._record_status(
            delivery.pk, None, delivery.status, message="Delivery created"
        )
        self._announce_insert(delivery)
        logger.info(
            "delivery.created",
            delivery_id=delivery.pk,
            order_number=delivery.order_number,
            purchase_order_id=delivery.purchase_order_id,
        )
        return delivery

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: Any) -> Optional[DeliveryOrder]:
        try:
            return DeliveryOrder.objects.filter(pk=id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[DeliveryOrder]:
        queryset = DeliveryOrder.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def list_for_purchase_order(self, order_id: Any) -> List[DeliveryOrder]:
        queryset = DeliveryOrder.objects.filter(purchase_order_id=order_id)
        return list(queryset.order_by("id"))

    def list_available(self, limit: int) -> List[DeliveryOrder]:
        return list(
            DeliveryOrder.objects.filter(
                status=DeliveryStatus.PENDING, courier__isnull=True
            ).order_by("-created_at", "-id")[:limit]
        )

    def list_for_courier(
        self, courier_id: Any, statuses: Iterable[str]
    ) -> List[DeliveryOrder]:
        return list(
            DeliveryOrder.objects.filter(
                courier_id=courier_id, status__in=list(statuses)
            ).order_by("-created_at", "-id")
        )

    def list_status_updates(self, delivery_id: Any) -> List[DeliveryStatusUpdate]:
        delivery_id = self._coerce_pk(delivery_id)
        if delivery_id is None:
            return []
        return list(DeliveryStatusUpdate.objects.filter(delivery_id=delivery_id))

    def has_active_for_courier(self, courier_id: Any) -> bool:
        return DeliveryOrder.objects.filter(
            courier_id=courier_id, status__in=ACTIVE_STATES
        ).exists()

    def list_stranded(self) -> List[DeliveryOrder]:
        return list(
            DeliveryOrder.objects.filter(
                purchase_order__status=PurchaseOrderStatus.CANCELLED
            )
            .exclude(status__in=TERMINAL_STATES)
            .order_by("purchase_order_id", "id")
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: DeliveryOrder) -> DeliveryOrder:
        old = self._snapshot(entity.pk)
        entity.save()
        self._announce(ChangeOperation.UPDATE, old, self._snapshot(entity.pk))
        return entity

    def transition(
        self,
        delivery_id: Any,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
        *,
        actor_id: Any = None,
        role: str = StatusUpdateRole.SYSTEM,
        message: str = "",
    ) -> bool:
        with transaction.atomic():
            if not self._guarded_update(delivery_id, expected, changes):
                return False
            if "status" in changes:
                self._record_status(
                    delivery_id,
                    expected.get("status"),
                    changes["status"],
                    actor_id=actor_id,
                    role=role,
                    message=message,
                )
        return True

    def _record_status(
        self,
        delivery_id: Any,
        old_status: Optional[str],
        new_status: str,
        *,
        actor_id: Any = None,
        role: str = StatusUpdateRole.SYSTEM,
        message: str = "",
    ) -> DeliveryStatusUpdate:
        update = DeliveryStatusUpdate.objects.create(
            delivery_id=delivery_id,
            old_status=old_status,
            new_status=new_status,
            updated_by_id=actor_id,
            updated_by_role=role,
            message=message,
        )
        logger.info(
            "delivery.status_recorded",
            delivery_id=delivery_id,
            old_status=old_status,
            new_status=new_status,
            role=role,
        )
        return update
