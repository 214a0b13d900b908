import pytest

from modules.deliveries.constants import DeliveryStatus
from modules.deliveries.models import DeliveryOrder
from modules.orders.constants import PurchaseOrderStatus

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"
RESUME_URL = "/api/v1/orders/resume/"


@pytest.fixture()
def checkout(seller, spots):
    return {
        "delivery_method": "delivery",
        "tax_cents": 120,
        "delivery_fee_cents": 300,
        **spots.dorm,
        "items": [
            {
                "seller_id": seller.pk,
                "title": "Desk lamp",
                "unit_price_cents": 1500,
                **spots.library,
            },
            {
                "seller_id": seller.pk,
                "title": "Textbook",
                "unit_price_cents": 2500,
                **spots.library,
            },
        ],
    }


@pytest.fixture()
def client(auth_client_for, buyer):
    return auth_client_for(buyer)


def _place(client, payload):
    response = client.post(ORDERS_URL, payload, format="json")
    assert response.status_code == 201, response.content
    return response.json()


class TestPlaceOrder:
    def test_create_returns_pending_payment(self, client, checkout):
        data = _place(client, checkout)

        assert data["status"] == "pending_payment"
        assert data["subtotal_cents"] == 4000
        assert data["total_cents"] == 4420
        assert len(data["items"]) == 2
        assert data["deliveries"] == []

    def test_empty_cart_returns_400(self, client, checkout):
        checkout["items"] = []
        assert client.post(ORDERS_URL, checkout, format="json").status_code == 400

    def test_delivery_without_address_returns_400(self, client, checkout):
        checkout["delivery_address"] = ""

        response = client.post(ORDERS_URL, checkout, format="json")

        assert response.status_code == 400
        assert "Delivery orders need a delivery address." in str(response.json())


class TestReadOrders:
    def test_list_only_own_orders(self, client, make_order, make_user):
        own = make_order()
        make_order(order_buyer=make_user("other"))

        data = client.get(ORDERS_URL).json()

        assert [row["id"] for row in data["results"]] == [own.pk]

    def test_filter_by_status(self, client, make_order):
        make_order()
        pending = make_order(status=PurchaseOrderStatus.PENDING_PAYMENT)

        data = client.get(ORDERS_URL, {"status": "pending_payment"}).json()

        assert [row["id"] for row in data["results"]] == [pending.pk]

    def test_foreign_order_is_404(self, client, make_order, make_user):
        foreign = make_order(order_buyer=make_user("other"))
        assert client.get(f"{ORDERS_URL}{foreign.pk}/").status_code == 404


class TestFinalize:
    def test_finalize_splits_into_deliveries(self, client, checkout):
        order = _place(client, checkout)

        response = client.post(f"{ORDERS_URL}{order['id']}/finalize/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "paid"
        assert data["already_paid"] is False
        assert data["warning"] is None
        assert len(data["deliveries"]) == 1
        assert data["deliveries"][0]["status"] == "pending"

    def test_replay_is_idempotent(self, client, checkout):
        order = _place(client, checkout)
        client.post(f"{ORDERS_URL}{order['id']}/finalize/")

        data = client.post(f"{ORDERS_URL}{order['id']}/finalize/").json()

        assert data["already_paid"] is True
        assert DeliveryOrder.objects.filter(purchase_order_id=order["id"]).count() == 1

    def test_missing_pickup_keeps_payment_with_warning(self, client, checkout):
        for item in checkout["items"]:
            item["pickup_lat"] = None
            item["pickup_lng"] = None
        order = _place(client, checkout)

        data = client.post(f"{ORDERS_URL}{order['id']}/finalize/").json()

        assert data["status"] == "paid"
        assert data["warning"].startswith("Payment confirmed")
        assert data["deliveries"] == []

    def test_cancelled_order_returns_409(self, client, make_order):
        order = make_order(status=PurchaseOrderStatus.CANCELLED)

        response = client.post(f"{ORDERS_URL}{order.pk}/finalize/")

        assert response.status_code == 409
        assert response.json()["code"] == "conflict"


class TestResume:
    def test_resume_uses_remembered_order(self, client, checkout):
        order = _place(client, checkout)

        response = client.post(RESUME_URL, {}, format="json")

        assert response.status_code == 200
        assert response.json()["id"] == order["id"]
        assert response.json()["status"] == "paid"

    def test_query_string_wins(self, client, make_order):
        first = make_order(status=PurchaseOrderStatus.PENDING_PAYMENT)
        make_order(status=PurchaseOrderStatus.PENDING_PAYMENT)

        response = client.post(f"{RESUME_URL}?order_id={first.pk}", {}, format="json")

        assert response.json()["id"] == first.pk

    def test_navigation_parameter(self, client, make_order):
        target = make_order(status=PurchaseOrderStatus.PENDING_PAYMENT)

        response = client.post(
            RESUME_URL, {"navigation_order_id": str(target.pk)}, format="json"
        )

        assert response.json()["id"] == target.pk

    def test_nothing_pending_returns_404(self, client):
        assert client.post(RESUME_URL, {}, format="json").status_code == 404


class TestCancel:
    def test_cancel_cascades_to_deliveries(
        self, client, make_delivery, django_capture_on_commit_callbacks
    ):
        delivery = make_delivery()

        with django_capture_on_commit_callbacks(execute=True):
            response = client.post(f"{ORDERS_URL}{delivery.purchase_order_id}/cancel/")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        delivery.refresh_from_db()
        assert delivery.status == DeliveryStatus.CANCELLED

    def test_cancel_twice_returns_409(self, client, make_order):
        order = make_order()
        client.post(f"{ORDERS_URL}{order.pk}/cancel/")

        response = client.post(f"{ORDERS_URL}{order.pk}/cancel/")

        assert response.status_code == 409

    def test_foreign_order_returns_404(self, client, make_order, make_user):
        foreign = make_order(order_buyer=make_user("other"))
        assert client.post(f"{ORDERS_URL}{foreign.pk}/cancel/").status_code == 404
