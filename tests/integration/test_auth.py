"""JWT authentication across the API.

/health is public; every DRF endpoint requires a SimpleJWT access token.
"""

import pytest

pytestmark = pytest.mark.integration

PROTECTED = [
    "/api/v1/couriers/me/",
    "/api/v1/dispatch/",
    "/api/v1/deliveries/",
    "/api/v1/orders/",
]


class TestPublicEndpoints:
    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200


class TestProtectedEndpoints:
    @pytest.mark.parametrize("url", PROTECTED)
    def test_no_token_returns_401(self, api_client, url):
        assert api_client.get(url).status_code == 401

    def test_invalid_token_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer invalid.token.here")
        assert api_client.get("/api/v1/dispatch/").status_code == 401

    def test_401_includes_www_authenticate_header(self, api_client):
        response = api_client.get("/api/v1/dispatch/")
        assert "Bearer" in response.get("WWW-Authenticate", "")


class TestTokenFlow:
    def test_obtained_token_grants_access(self, api_client, courier):
        response = api_client.post(
            "/api/v1/auth/token/",
            {"username": courier.user.username, "password": "testpass123"},
            format="json",
        )
        assert response.status_code == 200
        access = response.json()["access"]

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")

        assert api_client.get("/api/v1/couriers/me/").status_code == 200

    def test_wrong_password_returns_401(self, api_client, courier):
        response = api_client.post(
            "/api/v1/auth/token/",
            {"username": courier.user.username, "password": "nope"},
            format="json",
        )
        assert response.status_code == 401
