"""Purchase-order cancellation cascade and the reconciliation sweep."""

from __future__ import annotations

import pytest
from django.core.management import call_command

from modules.deliveries.constants import DeliveryStatus
from modules.deliveries.models import DeliveryOrder
from modules.deliveries.tasks import (
    cancel_deliveries_for_order,
    reconcile_cancelled_orders,
)
from modules.orders.constants import PurchaseOrderStatus
from modules.orders.models import PurchaseOrder

pytestmark = pytest.mark.unit


@pytest.fixture()
def split_order(make_order, seller, make_user, delivery_service, spots):
    order = make_order(
        lines=[
            (seller, spots.library, "Desk lamp", 1500),
            (make_user("seller"), spots.union, "Textbook", 4000),
            (make_user("seller"), {**spots.union, "pickup_lat": 39.1}, "Chair", 900),
        ]
    )
    return order, delivery_service.create_for_order(order)


def _cancel_purchase_order(order):
    PurchaseOrder.objects.filter(pk=order.pk).update(
        status=PurchaseOrderStatus.CANCELLED
    )


class TestCancelForPurchaseOrder:
    def test_cancels_every_open_delivery(self, split_order, courier, delivery_service):
        order, deliveries = split_order
        delivery_service.claim(deliveries[0].pk, courier.pk)

        result = delivery_service.cancel_for_purchase_order(order.pk)

        assert sorted(result.cancelled) == sorted(d.pk for d in deliveries)
        assert result.skipped == []
        statuses = DeliveryOrder.objects.filter(purchase_order=order).values_list(
            "status", flat=True
        )
        assert set(statuses) == {DeliveryStatus.CANCELLED}

    def test_leaves_delivered_rows_alone(self, split_order, courier, delivery_service):
        order, deliveries = split_order
        done = deliveries[0]
        delivery_service.claim(done.pk, courier.pk)
        delivery_service.confirm_pickup(done.pk, courier.pk)
        delivery_service.confirm_delivered(done.pk, courier.pk)

        result = delivery_service.cancel_for_purchase_order(order.pk)

        assert done.pk not in result.cancelled
        done.refresh_from_db()
        assert done.status == DeliveryStatus.DELIVERED

    def test_is_a_no_op_the_second_time(self, split_order, delivery_service):
        order, _ = split_order
        delivery_service.cancel_for_purchase_order(order.pk)

        again = delivery_service.cancel_for_purchase_order(order.pk)

        assert again.cancelled == [] and again.skipped == []

    def test_conflicting_row_is_skipped_not_fatal(
        self, split_order, delivery_service, monkeypatch
    ):
        order, deliveries = split_order
        repo = delivery_service._repo
        original = repo.transition
        raced = deliveries[1].pk

        def flaky(delivery_id, expected, changes, **kwargs):
            if delivery_id == raced:
                return False
            return original(delivery_id, expected, changes, **kwargs)

        monkeypatch.setattr(repo, "transition", flaky)

        result = delivery_service.cancel_for_purchase_order(order.pk)

        assert result.skipped == [raced]
        assert len(result.cancelled) == 2


class TestReconcile:
    def test_sweeps_only_cancelled_purchase_orders(
        self, split_order, make_delivery, delivery_service
    ):
        order, deliveries = split_order
        untouched = make_delivery()
        _cancel_purchase_order(order)

        results = delivery_service.reconcile_cancelled_orders()

        assert [r.order_id for r in results] == [order.pk]
        assert sorted(results[0].cancelled) == sorted(d.pk for d in deliveries)
        untouched.refresh_from_db()
        assert untouched.status == DeliveryStatus.PENDING

    def test_nothing_to_do(self, make_delivery, delivery_service):
        make_delivery()
        assert delivery_service.reconcile_cancelled_orders() == []

    def test_management_command(self, split_order, capsys):
        order, _ = split_order
        _cancel_purchase_order(order)

        call_command("reconcile_deliveries")

        assert "Reconciled 1 orders: cancelled=3, skipped=0" in capsys.readouterr().out


class TestTasks:
    def test_cascade_task_reports_result(self, split_order):
        order, deliveries = split_order

        outcome = cancel_deliveries_for_order(order.pk)

        assert outcome["status"] == "ok"
        assert sorted(outcome["cancelled"]) == sorted(d.pk for d in deliveries)

    def test_cascade_task_swallows_failures(self, monkeypatch):
        from modules.deliveries import services

        def explode():
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(services, "build_delivery_service", explode)

        assert cancel_deliveries_for_order(1) == {"status": "failed", "order_id": 1}
        assert reconcile_cancelled_orders() == {"status": "failed"}

    def test_reconcile_task(self, split_order):
        order, _ = split_order
        _cancel_purchase_order(order)

        assert reconcile_cancelled_orders() == {
            "status": "ok",
            "orders": 1,
            "cancelled": 3,
        }
