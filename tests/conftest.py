import itertools
from types import SimpleNamespace

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.couriers.constants import CourierStatus
from modules.couriers.models import Courier
from modules.orders.constants import DeliveryMethod, PurchaseOrderStatus
from modules.orders.models import PurchaseOrder, PurchaseOrderItem
from shared.infrastructure.feed import change_feed

User = get_user_model()

_usernames = itertools.count(1)

LIBRARY = {
    "pickup_address": "1117 Mid-Campus Dr",
    "pickup_building_name": "Hale Library",
    "pickup_lat": 39.1905,
    "pickup_lng": -96.5815,
}

UNION = {
    "pickup_address": "918 N 17th St",
    "pickup_building_name": "Student Union",
    "pickup_lat": 39.1868,
    "pickup_lng": -96.5843,
}

DORM = {
    "delivery_address": "2000 Jardine Dr",
    "delivery_lat": 39.2010,
    "delivery_lng": -96.5885,
}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def feed():
    """The process-wide change feed, emptied after the test."""
    yield change_feed
    change_feed.disconnect()
    change_feed.connect()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def make_user():
    def _make(prefix="user"):
        return User.objects.create_user(
            username=f"{prefix}{next(_usernames)}", password="testpass123"
        )

    return _make


@pytest.fixture()
def make_courier(make_user):
    def _make(status=CourierStatus.ONLINE, user=None):
        return Courier.objects.create(user=user or make_user("courier"), status=status)

    return _make


@pytest.fixture()
def buyer(make_user):
    return make_user("buyer")


@pytest.fixture()
def seller(make_user):
    return make_user("seller")


@pytest.fixture()
def courier(make_courier):
    return make_courier()


@pytest.fixture()
def make_order(buyer, seller):
    """Purchase order with one line per ``(seller, pickup, title, price)`` tuple."""

    def _make(
        lines=None,
        status=PurchaseOrderStatus.PAID,
        tax_cents=100,
        delivery_fee_cents=300,
        delivery_method=DeliveryMethod.DELIVERY,
        order_buyer=None,
    ):
        lines = lines or [(seller, LIBRARY, "Desk lamp", 1500)]
        order = PurchaseOrder.objects.create(
            buyer=order_buyer or buyer,
            status=status,
            delivery_method=delivery_method,
            tax_cents=tax_cents,
            delivery_fee_cents=delivery_fee_cents,
            **(DORM if delivery_method == DeliveryMethod.DELIVERY else {}),
        )
        subtotal = 0
        for line_seller, pickup, title, price in lines:
            PurchaseOrderItem.objects.create(
                order=order,
                seller=line_seller,
                title=title,
                unit_price_cents=price,
                quantity=1,
                **pickup,
            )
            subtotal += price
        order.subtotal_cents = subtotal
        order.total_cents = subtotal + tax_cents + delivery_fee_cents
        order.save(update_fields=["subtotal_cents", "total_cents"])
        return order

    return _make


@pytest.fixture()
def delivery_service():
    from modules.deliveries.services import build_delivery_service

    return build_delivery_service()


@pytest.fixture()
def make_delivery(make_order, delivery_service):
    """A pending delivery split from a fresh paid order."""

    def _make(**order_kwargs):
        return delivery_service.create_for_order(make_order(**order_kwargs))[0]

    return _make


@pytest.fixture()
def auth_client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client


@pytest.fixture()
def spots():
    """Named campus locations: ``library`` and ``union`` pickups, ``dorm`` drop-off."""
    return SimpleNamespace(library=LIBRARY, union=UNION, dorm=DORM)
