import pytest

from modules.couriers.constants import CourierStatus

pytestmark = pytest.mark.integration

COURIERS_URL = "/api/v1/couriers/"
ME_URL = "/api/v1/couriers/me/"
TOGGLE_URL = "/api/v1/couriers/me/toggle/"


class TestRegister:
    def test_register_returns_201(self, auth_client_for, make_user):
        user = make_user()

        response = auth_client_for(user).post(
            COURIERS_URL, {"vehicle_type": "scooter"}, format="json"
        )

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == user.pk
        assert data["status"] == "offline"
        assert data["vehicle_type"] == "scooter"

    def test_register_twice_returns_409(self, auth_client_for, courier):
        response = auth_client_for(courier.user).post(COURIERS_URL, {}, format="json")
        assert response.status_code == 409

    def test_unknown_vehicle_returns_400(self, auth_client_for, make_user):
        response = auth_client_for(make_user()).post(
            COURIERS_URL, {"vehicle_type": "jetpack"}, format="json"
        )
        assert response.status_code == 400

    def test_anonymous_rejected(self, api_client):
        assert api_client.post(COURIERS_URL, {}, format="json").status_code == 401


class TestProfile:
    def test_me(self, auth_client_for, courier):
        response = auth_client_for(courier.user).get(ME_URL)

        assert response.status_code == 200
        assert response.json()["status"] == "online"

    def test_me_for_non_courier_returns_404(self, auth_client_for, buyer):
        assert auth_client_for(buyer).get(ME_URL).status_code == 404


class TestToggle:
    def test_toggle_flips_status(self, auth_client_for, courier):
        client = auth_client_for(courier.user)

        assert client.post(TOGGLE_URL).json()["status"] == "offline"
        assert client.post(TOGGLE_URL).json()["status"] == "online"

    def test_busy_courier_gets_409(self, auth_client_for, make_courier):
        busy = make_courier(status=CourierStatus.BUSY)

        response = auth_client_for(busy.user).post(TOGGLE_URL)

        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    def test_non_courier_gets_404(self, auth_client_for, buyer):
        assert auth_client_for(buyer).post(TOGGLE_URL).status_code == 404
