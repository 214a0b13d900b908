"""Purchase order service layer (Use Cases).

Covers what dispatch needs from the purchase order lifecycle:

- ``place_order``: record a priced cart as ``pending_payment``.
- ``finalize_payment``: guarded ``pending_payment -> paid``, then split
  delivery orders into dispatchable ``DeliveryOrder`` rows.
- ``cancel_order``: guarded transition to ``cancelled``; the delivery
  cascade runs after commit as a fire-and-forget task and its failure
  never undoes the cancellation.
- ``resolve_handoff``: find the order a returning buyer is paying for.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, List, Mapping, Optional, Protocol

import structlog
from django.db import transaction
from django.utils import timezone

from modules.orders.constants import PurchaseOrderStatus
from modules.orders.exceptions import (
    InvalidPurchaseOrderStatus,
    NoPendingOrder,
    PurchaseOrderNotFound,
)
from modules.orders.handoff import (
    default_sources,
    forget_pending_order,
    remember_pending_order,
    resolve_order_id,
)

if TYPE_CHECKING:
    from modules.deliveries.models import DeliveryOrder
    from modules.orders.dtos import PlaceOrderDTO
    from modules.orders.models import PurchaseOrder
    from modules.orders.repositories.interfaces import IPurchaseOrderRepository
    from modules.tracking.storage import KeyValueStore

logger = structlog.get_logger(__name__)


class DeliveryCreator(Protocol):
    def create_for_order(self, order: PurchaseOrder) -> List[DeliveryOrder]: ...


@dataclass(frozen=True)
class FinalizeResult:
    """Outcome of a payment confirmation.

    ``warning`` is set when the order was paid but its delivery rows
    could not be created; the payment itself is never rolled back.
    """

    order: PurchaseOrder
    deliveries: List[DeliveryOrder] = field(default_factory=list)
    already_paid: bool = False
    warning: Optional[str] = None


def enqueue_delivery_cascade(order_id: int) -> None:
    """Default cascade: hand the order to the Celery worker."""
    from modules.deliveries.tasks import cancel_deliveries_for_order

    try:
        cancel_deliveries_for_order.delay(order_id)
    except Exception:
        logger.exception("purchase_order.cascade_enqueue_failed", order_id=order_id)
    else:
        logger.info("purchase_order.cascade_enqueued", order_id=order_id)


class PurchaseOrderService:
    """Application service for purchase order use-cases.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IPurchaseOrderRepository,
        delivery_creator: DeliveryCreator,
        store: KeyValueStore,
        cascade: Optional[Callable[[int], None]] = None,
    ) -> None:
        self._order_repo = order_repository
        self._deliveries = delivery_creator
        self._store = store
        self._cascade = cascade or enqueue_delivery_cascade

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def place_order(self, dto: PlaceOrderDTO) -> PurchaseOrder:
        order = self._order_repo.create(
            {
                "buyer_id": dto.buyer_id,
                "delivery_method": dto.delivery_method,
                "delivery_address": dto.delivery_address,
                "delivery_lat": dto.delivery_lat,
                "delivery_lng": dto.delivery_lng,
                "tax_cents": dto.tax_cents,
                "delivery_fee_cents": dto.delivery_fee_cents,
                "items": [item.model_dump() for item in dto.items],
            }
        )
        remember_pending_order(self._store, dto.buyer_id, order.pk)
        logger.info("purchase_order.placed", order_id=order.pk, buyer_id=dto.buyer_id)
        return order

    def finalize_payment(self, order_id: Any, buyer_id: Any) -> FinalizeResult:
        """Mark the order paid and create its delivery rows.

        Replaying the call on a paid order is a no-op that returns the
        existing delivery rows.

        Raises:
            PurchaseOrderNotFound: unknown order, or not the caller's.
            InvalidPurchaseOrderStatus: the order was cancelled.
        """
        order = self._get_for_buyer(order_id, buyer_id)
        log = logger.bind(order_id=order.pk, buyer_id=buyer_id)

        already_paid = order.status == PurchaseOrderStatus.PAID
        if not already_paid:
            if not order.can_transition_to(PurchaseOrderStatus.PAID):
                log.warning("purchase_order.finalize_rejected", status=order.status)
                raise InvalidPurchaseOrderStatus(
                    f"Cannot confirm payment for an order that is {order.status}."
                )
            paid = self._order_repo.transition(
                order.pk,
                PurchaseOrderStatus.PENDING_PAYMENT,
                {"status": PurchaseOrderStatus.PAID, "paid_at": timezone.now()},
            )
            order = self._get_for_buyer(order.pk, buyer_id)
            if not paid and order.status != PurchaseOrderStatus.PAID:
                log.warning("purchase_order.finalize_conflict", status=order.status)
                raise InvalidPurchaseOrderStatus(
                    f"Cannot confirm payment for an order that is {order.status}."
                )
            already_paid = not paid

        forget_pending_order(self._store, buyer_id)
        log.info("purchase_order.paid", already_paid=already_paid)

        if not order.requires_delivery:
            return FinalizeResult(order=order, already_paid=already_paid)

        from modules.deliveries.exceptions import MissingPickupLocation

        try:
            deliveries = self._deliveries.create_for_order(order)
        except MissingPickupLocation as exc:
            log.error("purchase_order.delivery_split_failed", reason=str(exc))
            return FinalizeResult(
                order=order,
                already_paid=already_paid,
                warning=(
                    "Payment confirmed, but delivery could not be scheduled: "
                    f"{exc}"
                ),
            )
        return FinalizeResult(
            order=order, deliveries=deliveries, already_paid=already_paid
        )

    def cancel_order(self, order_id: Any, buyer_id: Any) -> PurchaseOrder:
        """Cancel the order; delivery rows are cancelled best-effort afterwards.

        Raises:
            PurchaseOrderNotFound: unknown order, or not the caller's.
            InvalidPurchaseOrderStatus: the order is already cancelled.
        """
        with transaction.atomic():
            order = self._get_for_buyer(order_id, buyer_id)
            log = logger.bind(order_id=order.pk, current_status=order.status)

            if not order.can_transition_to(PurchaseOrderStatus.CANCELLED):
                log.warning("purchase_order.cancel_not_allowed")
                raise InvalidPurchaseOrderStatus(
                    f"Cannot cancel an order that is {order.status}."
                )

            cancelled = self._order_repo.transition(
                order.pk,
                order.status,
                {
                    "status": PurchaseOrderStatus.CANCELLED,
                    "cancelled_at": timezone.now(),
                },
            )
            if not cancelled:
                log.warning("purchase_order.cancel_conflict")
                raise InvalidPurchaseOrderStatus(
                    "The order changed while cancelling; refresh and try again."
                )

            pk = order.pk
            transaction.on_commit(lambda: self._run_cascade(pk))

        forget_pending_order(self._store, buyer_id)
        log.info("purchase_order.cancelled")
        return self._get_for_buyer(pk, buyer_id)

    def _run_cascade(self, order_id: int) -> None:
        try:
            self._cascade(order_id)
        except Exception:
            logger.exception("purchase_order.cascade_failed", order_id=order_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: Any, buyer_id: Any) -> PurchaseOrder:
        return self._get_for_buyer(order_id, buyer_id)

    def resolve_handoff(
        self,
        buyer_id: Any,
        query_params: Optional[Mapping[str, Any]] = None,
        route_params: Optional[Mapping[str, Any]] = None,
    ) -> PurchaseOrder:
        """Identify the order a buyer returning from payment refers to.

        Raises:
            NoPendingOrder: no source produced an order id.
            PurchaseOrderNotFound: the resolved id is not the caller's.
        """
        resolution = resolve_order_id(
            default_sources(
                buyer_id=buyer_id,
                query_params=query_params or {},
                route_params=route_params or {},
                store=self._store,
                repository=self._order_repo,
            )
        )
        if resolution is None:
            raise NoPendingOrder("No order is awaiting payment confirmation.")
        return self._get_for_buyer(resolution.order_id, buyer_id)

    def _get_for_buyer(self, order_id: Any, buyer_id: Any) -> PurchaseOrder:
        order = self._order_repo.get_for_buyer(order_id, buyer_id)
        if order is None:
            raise PurchaseOrderNotFound(f"Order {order_id} not found.")
        return order
