import pytest

from modules.orders.constants import PurchaseOrderStatus
from modules.orders.handoff import (
    HandoffSource,
    default_sources,
    forget_pending_order,
    parse_order_id,
    pending_order_key,
    remember_pending_order,
    resolve_order_id,
)
from modules.orders.repositories import PurchaseOrderDjangoRepository
from modules.tracking.storage import MemoryKeyValueStore

pytestmark = pytest.mark.unit


class TestParseOrderId:
    @pytest.mark.parametrize("raw,expected", [(42, 42), ("42", 42), (" 7 ", 7)])
    def test_valid(self, raw, expected):
        assert parse_order_id(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "0", -3, "4.5", True])
    def test_invalid(self, raw):
        assert parse_order_id(raw) is None


class TestResolveOrderId:
    def test_first_valid_source_wins(self):
        resolution = resolve_order_id(
            [
                HandoffSource("url_param", lambda: None),
                HandoffSource("navigation_param", lambda: "not-a-number"),
                HandoffSource("local_storage", lambda: "12"),
                HandoffSource("latest_pending_order", lambda: 99),
            ]
        )
        assert resolution.order_id == 12
        assert resolution.source == "local_storage"

    def test_failing_source_is_skipped(self):
        def broken():
            raise ConnectionError("storage offline")

        resolution = resolve_order_id(
            [
                HandoffSource("local_storage", broken),
                HandoffSource("fallback", lambda: 5),
            ]
        )
        assert resolution.source == "fallback"

    def test_nothing_found(self):
        assert resolve_order_id([HandoffSource("url_param", lambda: None)]) is None

    def test_later_sources_are_not_consulted(self):
        calls = []

        def tracked():
            calls.append("late")
            return 2

        resolve_order_id([HandoffSource("a", lambda: 1), HandoffSource("b", tracked)])
        assert calls == []


class TestDefaultSources:
    def _resolve(self, buyer, store, query=None, route=None):
        return resolve_order_id(
            default_sources(
                buyer_id=buyer.pk,
                query_params=query or {},
                route_params=route or {},
                store=store,
                repository=PurchaseOrderDjangoRepository(),
            )
        )

    def test_precedence(self, buyer, make_order):
        pending = make_order(status=PurchaseOrderStatus.PENDING_PAYMENT)
        store = MemoryKeyValueStore()
        remember_pending_order(store, buyer.pk, 300)

        both = self._resolve(buyer, store, {"order_id": "100"}, {"order_id": "200"})
        assert both.source == "url_param"
        assert self._resolve(buyer, store, {}, {"order_id": "200"}).order_id == 200
        assert self._resolve(buyer, store).order_id == 300

        forget_pending_order(store, buyer.pk)
        resolution = self._resolve(buyer, store)
        assert resolution.source == "latest_pending_order"
        assert resolution.order_id == pending.pk

    def test_paid_orders_are_not_a_fallback(self, buyer, make_order):
        make_order(status=PurchaseOrderStatus.PAID)
        assert self._resolve(buyer, MemoryKeyValueStore()) is None

    def test_storage_key_is_per_buyer(self):
        assert pending_order_key(5) != pending_order_key(6)
