"""Unit tests for ``PurchaseOrderService``.

Covers:
- Placing an order and remembering it for the payment handoff.
- Payment confirmation: split into deliveries, replay safety, pickup
  orders, failed split keeping the payment.
- Cancellation: guarded transition and the after-commit cascade.
"""

from __future__ import annotations

import pytest

from modules.deliveries.constants import DeliveryStatus
from modules.deliveries.models import DeliveryOrder
from modules.orders.constants import DeliveryMethod, PurchaseOrderStatus
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO
from modules.orders.exceptions import (
    InvalidPurchaseOrderStatus,
    NoPendingOrder,
    PurchaseOrderNotFound,
)
from modules.orders.handoff import pending_order_key
from modules.orders.repositories import PurchaseOrderDjangoRepository
from modules.orders.services import PurchaseOrderService
from modules.tracking.storage import MemoryKeyValueStore

pytestmark = pytest.mark.unit


def _line(seller):
    return PlaceOrderItemDTO(seller_id=seller.pk, title="x", unit_price_cents=1)


@pytest.fixture()
def store():
    return MemoryKeyValueStore()


@pytest.fixture()
def cascaded():
    return []


@pytest.fixture()
def service(delivery_service, store, cascaded):
    return PurchaseOrderService(
        order_repository=PurchaseOrderDjangoRepository(),
        delivery_creator=delivery_service,
        store=store,
        cascade=cascaded.append,
    )


@pytest.fixture()
def pending(make_order):
    return make_order(status=PurchaseOrderStatus.PENDING_PAYMENT)


class TestPlaceOrder:
    def test_records_pending_order_and_remembers_it(
        self, service, store, buyer, seller, spots
    ):
        dto = PlaceOrderDTO(
            buyer_id=buyer.pk,
            **spots.dorm,
            tax_cents=120,
            delivery_fee_cents=299,
            items=[
                PlaceOrderItemDTO(
                    seller_id=seller.pk,
                    title="Desk lamp",
                    unit_price_cents=1500,
                    quantity=2,
                    **spots.library,
                )
            ],
        )

        order = service.place_order(dto)

        assert order.status == PurchaseOrderStatus.PENDING_PAYMENT
        assert order.subtotal_cents == 3000
        assert order.total_cents == 3000 + 120 + 299
        assert store.get(pending_order_key(buyer.pk)) == str(order.pk)

    def test_delivery_requires_an_address(self, buyer, seller):
        with pytest.raises(ValueError):
            PlaceOrderDTO(
                buyer_id=buyer.pk,
                items=[_line(seller)],
            )

    def test_pickup_cannot_carry_a_fee(self, buyer, seller):
        with pytest.raises(ValueError):
            PlaceOrderDTO(
                buyer_id=buyer.pk,
                delivery_method=DeliveryMethod.PICKUP,
                delivery_fee_cents=100,
                items=[_line(seller)],
            )

    def test_needs_items(self, buyer):
        with pytest.raises(ValueError):
            PlaceOrderDTO(buyer_id=buyer.pk, delivery_address="Dorm", items=[])


class TestFinalizePayment:
    def test_marks_paid_and_splits(self, service, pending, buyer, store):
        remember_key = pending_order_key(buyer.pk)
        store.set(remember_key, str(pending.pk))

        result = service.finalize_payment(pending.pk, buyer.pk)

        assert result.order.status == PurchaseOrderStatus.PAID
        assert result.order.paid_at is not None
        assert result.already_paid is False
        assert result.warning is None
        assert len(result.deliveries) == 1
        assert result.deliveries[0].status == DeliveryStatus.PENDING
        assert store.get(remember_key) is None

    def test_replay_is_harmless(self, service, pending, buyer):
        first = service.finalize_payment(pending.pk, buyer.pk)
        second = service.finalize_payment(pending.pk, buyer.pk)

        assert second.already_paid is True
        assert [d.pk for d in second.deliveries] == [d.pk for d in first.deliveries]
        assert DeliveryOrder.objects.filter(purchase_order=pending).count() == 1

    def test_pickup_order_has_no_deliveries(self, service, make_order, buyer):
        order = make_order(
            status=PurchaseOrderStatus.PENDING_PAYMENT,
            delivery_method=DeliveryMethod.PICKUP,
            delivery_fee_cents=0,
        )

        result = service.finalize_payment(order.pk, buyer.pk)

        assert result.order.status == PurchaseOrderStatus.PAID
        assert result.deliveries == []

    def test_missing_pickup_keeps_payment_with_warning(
        self, service, make_order, buyer, seller
    ):
        order = make_order(
            status=PurchaseOrderStatus.PENDING_PAYMENT,
            lines=[(seller, {"pickup_address": ""}, "Mystery box", 1000)],
        )

        result = service.finalize_payment(order.pk, buyer.pk)

        assert result.order.status == PurchaseOrderStatus.PAID
        assert result.deliveries == []
        assert "Mystery box" in result.warning

    def test_cancelled_order_cannot_be_paid(self, service, make_order, buyer):
        order = make_order(status=PurchaseOrderStatus.CANCELLED)
        with pytest.raises(InvalidPurchaseOrderStatus):
            service.finalize_payment(order.pk, buyer.pk)

    def test_other_buyers_order_is_not_found(self, service, pending, make_user):
        with pytest.raises(PurchaseOrderNotFound):
            service.finalize_payment(pending.pk, make_user().pk)


class TestCancelOrder:
    def test_cancel_runs_cascade_after_commit(
        self, service, pending, buyer, cascaded, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            order = service.cancel_order(pending.pk, buyer.pk)

        assert order.status == PurchaseOrderStatus.CANCELLED
        assert order.cancelled_at is not None
        assert cascaded == [pending.pk]

    def test_cascade_waits_for_commit(
        self, service, pending, buyer, cascaded, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks() as callbacks:
            service.cancel_order(pending.pk, buyer.pk)
            assert cascaded == []
        assert len(callbacks) >= 1

    def test_paid_order_cascade_cancels_deliveries(
        self,
        delivery_service,
        store,
        make_order,
        buyer,
        django_capture_on_commit_callbacks,
    ):
        service = PurchaseOrderService(
            order_repository=PurchaseOrderDjangoRepository(),
            delivery_creator=delivery_service,
            store=store,
            cascade=delivery_service.cancel_for_purchase_order,
        )
        order = make_order()
        deliveries = delivery_service.create_for_order(order)

        with django_capture_on_commit_callbacks(execute=True):
            service.cancel_order(order.pk, buyer.pk)

        for delivery in deliveries:
            delivery.refresh_from_db()
            assert delivery.status == DeliveryStatus.CANCELLED

    def test_cascade_failure_does_not_undo_cancellation(
        self,
        delivery_service,
        store,
        pending,
        buyer,
        django_capture_on_commit_callbacks,
    ):
        def broken(order_id):
            raise RuntimeError("broker down")

        service = PurchaseOrderService(
            order_repository=PurchaseOrderDjangoRepository(),
            delivery_creator=delivery_service,
            store=store,
            cascade=broken,
        )

        with django_capture_on_commit_callbacks(execute=True):
            order = service.cancel_order(pending.pk, buyer.pk)

        pending.refresh_from_db()
        assert order.status == pending.status == PurchaseOrderStatus.CANCELLED

    def test_double_cancel_is_rejected(self, service, pending, buyer):
        service.cancel_order(pending.pk, buyer.pk)
        with pytest.raises(InvalidPurchaseOrderStatus):
            service.cancel_order(pending.pk, buyer.pk)


class TestResolveHandoff:
    def test_resolves_latest_pending(self, service, pending, buyer):
        assert service.resolve_handoff(buyer.pk).pk == pending.pk

    def test_foreign_id_is_not_found(self, service, make_order, make_user, buyer):
        stranger_order = make_order(
            status=PurchaseOrderStatus.PENDING_PAYMENT, order_buyer=make_user()
        )
        with pytest.raises(PurchaseOrderNotFound):
            service.resolve_handoff(
                buyer.pk, query_params={"order_id": stranger_order.pk}
            )

    def test_nothing_pending(self, service, buyer):
        with pytest.raises(NoPendingOrder):
            service.resolve_handoff(buyer.pk)
