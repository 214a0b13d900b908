"""Delivery service layer: the delivery state machine.

    pending -> accepted -> picked_up -> delivered
    pending | accepted | picked_up -> cancelled

Every transition is one guarded ``UPDATE`` whose ``WHERE`` clause states
the expected prior status (and assignee).  The database evaluates the
predicate, so two couriers racing for the same delivery produce exactly
one winner; the loser gets a ``DeliveryConflict``.  Replaying a
transition that already happened is also a conflict, which makes every
operation idempotent under retry.

Courier bookkeeping (busy flag, counters) happens in the same database
transaction as the delivery update.  Change-feed events are emitted only
after commit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.couriers.constants import CourierStatus
from modules.couriers.exceptions import CourierNotFound
from modules.deliveries.allocation import allocate, group_items
from modules.deliveries.constants import (
    NO_LONGER_AVAILABLE,
    DeliveryStatus,
    StatusUpdateRole,
)
from modules.deliveries.exceptions import (
    DeliveryConflict,
    DeliveryNotFound,
    NotADeliveryOrder,
    NotDeliveryParticipant,
)
from modules.deliveries.hooks import ChainedHooks, NoopHooks, run_hook
from modules.orders.constants import PurchaseOrderStatus

if TYPE_CHECKING:
    from modules.couriers.repositories.interfaces import ICourierRepository
    from modules.deliveries.hooks import DeliveryLifecycleHooks
    from modules.deliveries.models import DeliveryOrder, DeliveryStatusUpdate
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from modules.orders.models import PurchaseOrder
    from modules.tracking.session import TrackingSession

logger = structlog.get_logger(__name__)

UNAVAILABLE_COURIER = {
    CourierStatus.BUSY: "Finish your active delivery before claiming another.",
    CourierStatus.OFFLINE: "Go online to claim deliveries.",
}


@dataclass
class CascadeResult:
    order_id: Any
    cancelled: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)


class DeliveryService:
    """Application service for the delivery lifecycle.

    Receives repositories and lifecycle hooks via constructor injection.
    """

    def __init__(
        self,
        delivery_repository: IDeliveryRepository,
        courier_repository: ICourierRepository,
        hooks: Optional[DeliveryLifecycleHooks] = None,
    ) -> None:
        self._repo = delivery_repository
        self._courier_repo = courier_repository
        self._hooks = hooks or NoopHooks()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_for_order(self, order: PurchaseOrder) -> List[DeliveryOrder]:
        """Split a paid delivery order into one delivery per pickup group.

        Idempotent: when rows already exist for the order they are
        returned unchanged.

        Raises:
            NotADeliveryOrder: the order is for self-pickup.
            DeliveryConflict: the order is not paid.
            MissingPickupLocation: an item has no pickup location.
        """
        log = logger.bind(purchase_order_id=order.pk)

        if not order.requires_delivery:
            raise NotADeliveryOrder(f"Order {order.pk} is not a delivery order.")
        if order.status != PurchaseOrderStatus.PAID:
            raise DeliveryConflict(f"Order {order.pk} is {order.status}, not paid.")

        existing = self._repo.list_for_purchase_order(order.pk)
        if existing:
            log.info("delivery.split_idempotent_hit", count=len(existing))
            return existing

        allocations = allocate(
            group_items(order.items.all()), order.tax_cents, order.delivery_fee_cents
        )

        created = []
        with transaction.atomic():
            for allocation in allocations:
                group = allocation.group
                created.append(
                    self._repo.create(
                        {
                            "purchase_order_id": order.pk,
                            "buyer_id": order.buyer_id,
                            "seller_id": group.seller_id,
                            "listing_title": group.listing_title,
                            "pickup_address": group.pickup_address,
                            "pickup_building_name": group.pickup_building_name,
                            "pickup_lat": group.pickup_lat,
                            "pickup_lng": group.pickup_lng,
                            "delivery_address": order.delivery_address
                            or "Buyer location",
                            "delivery_lat": order.delivery_lat,
                            "delivery_lng": order.delivery_lng,
                            "subtotal_cents": group.subtotal_cents,
                            "tax_cents": allocation.tax_cents,
                            "delivery_fee_cents": allocation.delivery_fee_cents,
                            "total_cents": allocation.total_cents,
                        }
                    )
                )

        log.info("delivery.split_created", count=len(created))
        return created

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def claim(self, delivery_id: Any, courier_id: Any) -> DeliveryOrder:
        """Take exclusive ownership of a pending delivery.

        Raises:
            CourierNotFound: the user is not a courier.
            DeliveryNotFound: the delivery does not exist.
            DeliveryConflict: already claimed, no longer pending, or the
                courier is offline or already holds an active delivery.
        """
        log = logger.bind(delivery_id=delivery_id, courier_id=courier_id)

        courier = self._courier_repo.get_by_id(courier_id)
        if courier is None:
            raise CourierNotFound(f"Courier {courier_id} not found.")
        if courier.status != CourierStatus.ONLINE:
            log.info("delivery.claim_rejected_unavailable", status=courier.status)
            raise DeliveryConflict(UNAVAILABLE_COURIER[courier.status])

        with transaction.atomic():
            claimed = self._repo.transition(
                delivery_id,
                expected={"status": DeliveryStatus.PENDING, "courier__isnull": True},
                changes={
                    "status": DeliveryStatus.ACCEPTED,
                    "courier_id": courier.pk,
                    "accepted_at": timezone.now(),
                },
                actor_id=courier.pk,
                role=StatusUpdateRole.COURIER,
                message="Courier accepted the delivery",
            )
            if not claimed:
                log.info("delivery.claim_lost")
                raise self._conflict(delivery_id, NO_LONGER_AVAILABLE)
            if not self._courier_repo.mark_busy(courier.pk):
                # Raising here rolls back the claim above.
                current = self._courier_repo.get_by_id(courier.pk)
                status = current.status if current else CourierStatus.OFFLINE
                if status not in UNAVAILABLE_COURIER:
                    status = CourierStatus.BUSY
                log.info("delivery.claim_rejected_unavailable", status=status)
                raise DeliveryConflict(UNAVAILABLE_COURIER[status])

        log.info("delivery.claimed")
        return self._get(delivery_id)

    def confirm_pickup(self, delivery_id: Any, courier_id: Any) -> DeliveryOrder:
        """``accepted -> picked_up`` for the assigned courier."""
        log = logger.bind(delivery_id=delivery_id, courier_id=courier_id)

        picked_up = self._repo.transition(
            delivery_id,
            expected={"status": DeliveryStatus.ACCEPTED, "courier_id": courier_id},
            changes={
                "status": DeliveryStatus.PICKED_UP,
                "picked_up_at": timezone.now(),
            },
            actor_id=courier_id,
            role=StatusUpdateRole.COURIER,
            message="Courier picked up the order",
        )
        if not picked_up:
            log.info("delivery.pickup_conflict")
            raise self._conflict(
                delivery_id, "This delivery is not awaiting pickup by you."
            )

        log.info("delivery.picked_up")
        delivery = self._get(delivery_id)
        run_hook(self._hooks, "after_pickup", delivery)
        return delivery

    def confirm_delivered(self, delivery_id: Any, courier_id: Any) -> DeliveryOrder:
        """``picked_up -> delivered``; credits the courier exactly once."""
        log = logger.bind(delivery_id=delivery_id, courier_id=courier_id)

        with transaction.atomic():
            delivery = self._get(delivery_id)
            delivered = self._repo.transition(
                delivery_id,
                expected={"status": DeliveryStatus.PICKED_UP, "courier_id": courier_id},
                changes={
                    "status": DeliveryStatus.DELIVERED,
                    "delivered_at": timezone.now(),
                },
                actor_id=courier_id,
                role=StatusUpdateRole.COURIER,
                message="Order delivered",
            )
            if not delivered:
                log.info("delivery.deliver_conflict", status=delivery.status)
                raise DeliveryConflict("This delivery is not in progress with you.")

            release = not self._repo.has_active_for_courier(courier_id)
            self._courier_repo.credit_delivery(
                courier_id, delivery.delivery_fee_cents, release=release
            )

        log.info("delivery.delivered", fee_cents=delivery.delivery_fee_cents)
        delivery = self._get(delivery_id)
        run_hook(self._hooks, "after_finished", delivery)
        return delivery

    def cancel(
        self, delivery_id: Any, actor_id: Any, reason: str = ""
    ) -> DeliveryOrder:
        """Cancel a non-terminal delivery on behalf of a participant.

        Raises:
            DeliveryNotFound: the delivery does not exist.
            NotDeliveryParticipant: the actor is not buyer, seller or courier.
            DeliveryConflict: the delivery is already delivered or cancelled.
        """
        delivery = self._get(delivery_id)
        if not delivery.is_participant(actor_id):
            logger.warning(
                "delivery.cancel_forbidden", delivery_id=delivery_id, actor_id=actor_id
            )
            raise NotDeliveryParticipant("Only participants can cancel a delivery.")
        return self._cancel(delivery, reason=reason, actor_id=actor_id)

    def cancel_for_purchase_order(self, order_id: Any) -> CascadeResult:
        """Cancel every non-terminal delivery split from a purchase order.

        Each delivery is cancelled on its own; a conflict on one (for
        example a concurrent delivery confirmation) is logged and skipped.
        """
        result = CascadeResult(order_id=order_id)
        for delivery in self._repo.list_for_purchase_order(order_id):
            if delivery.is_terminal:
                continue
            try:
                self._cancel(delivery, reason="Purchase order cancelled")
            except DeliveryConflict:
                logger.warning(
                    "delivery.cascade_skipped",
                    delivery_id=delivery.pk,
                    purchase_order_id=order_id,
                )
                result.skipped.append(delivery.pk)
            else:
                result.cancelled.append(delivery.pk)

        logger.info(
            "delivery.cascade_completed",
            purchase_order_id=order_id,
            cancelled=len(result.cancelled),
            skipped=len(result.skipped),
        )
        return result

    def reconcile_cancelled_orders(self) -> List[CascadeResult]:
        """Sweep deliveries left behind by a failed cancellation cascade."""
        order_ids = sorted(
            {delivery.purchase_order_id for delivery in self._repo.list_stranded()}
        )
        results = [self.cancel_for_purchase_order(order_id) for order_id in order_ids]
        logger.info(
            "delivery.reconciled",
            orders=len(results),
            cancelled=sum(len(r.cancelled) for r in results),
        )
        return results

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_delivery(self, delivery_id: Any) -> DeliveryOrder:
        return self._get(delivery_id)

    def status_timeline(self, delivery_id: Any) -> List[DeliveryStatusUpdate]:
        """Status changes of a delivery, oldest first."""
        return self._repo.list_status_updates(self._get(delivery_id).pk)

    def list_deliveries(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[DeliveryOrder]:
        return self._repo.list(filters)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, delivery_id: Any) -> DeliveryOrder:
        delivery = self._repo.get_by_id(delivery_id)
        if delivery is None:
            raise DeliveryNotFound(f"Delivery {delivery_id} not found.")
        return delivery

    def _conflict(self, delivery_id: Any, message: str) -> Exception:
        if self._repo.get_by_id(delivery_id) is None:
            return DeliveryNotFound(f"Delivery {delivery_id} not found.")
        return DeliveryConflict(message)

    def _cancel(
        self, delivery: DeliveryOrder, *, reason: str, actor_id: Any = None
    ) -> DeliveryOrder:
        role = delivery.role_of(actor_id)
        log = logger.bind(delivery_id=delivery.pk, status=delivery.status, actor=role)
        if not delivery.can_transition_to(DeliveryStatus.CANCELLED):
            log.info("delivery.cancel_conflict")
            raise DeliveryConflict(f"This delivery is already {delivery.status}.")

        previous_courier = delivery.courier_id
        with transaction.atomic():
            cancelled = self._repo.transition(
                delivery.pk,
                expected={"status": delivery.status, "courier_id": previous_courier},
                changes={
                    "status": DeliveryStatus.CANCELLED,
                    "courier_id": None,
                    "cancelled_at": timezone.now(),
                    "cancel_reason": reason[:255],
                },
                actor_id=actor_id,
                role=role,
                message=reason or "Delivery cancelled",
            )
            if not cancelled:
                log.info("delivery.cancel_conflict")
                raise DeliveryConflict(
                    "This delivery changed while cancelling; refresh and try again."
                )
            if previous_courier and not self._repo.has_active_for_courier(
                previous_courier
            ):
                self._courier_repo.release(previous_courier)

        log.info("delivery.cancelled", released_courier=previous_courier)
        cancelled_delivery = self._get(delivery.pk)
        if previous_courier:
            run_hook(self._hooks, "after_finished", cancelled_delivery)
        return cancelled_delivery


def build_delivery_service(
    session: Optional[TrackingSession] = None,
) -> DeliveryService:
    """Service wired to the Django repositories and server-side tracking cleanup.

    Given a courier's *session* (the client side), pickup also publishes
    a fresh position and the end of the tracked delivery stops the session.
    """
    from modules.couriers.repositories import CourierDjangoRepository
    from modules.deliveries.repositories import DeliveryDjangoRepository
    from modules.tracking.hooks import SessionTrackingHooks, TrackingCleanupHooks
    from modules.tracking.repositories import TrackingDjangoRepository
    from modules.tracking.services import TrackingService

    deliveries = DeliveryDjangoRepository()
    tracking = TrackingService(TrackingDjangoRepository(), deliveries)
    hooks: DeliveryLifecycleHooks = TrackingCleanupHooks(tracking)
    if session is not None:
        hooks = ChainedHooks(hooks, SessionTrackingHooks(session))
    return DeliveryService(deliveries, CourierDjangoRepository(), hooks=hooks)
