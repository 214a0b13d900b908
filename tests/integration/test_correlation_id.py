import uuid

import pytest

pytestmark = pytest.mark.integration


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, client):
        custom_id = "my-custom-request-id-123"
        response = client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        assert response["X-Request-ID"] == custom_id

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get("/health")
        request_id = response["X-Request-ID"]
        parsed = uuid.UUID(request_id, version=4)
        assert str(parsed) == request_id

    def test_api_responses_carry_request_id(self, api_client_with_correlation, courier):
        api_client, cid = api_client_with_correlation
        api_client.force_authenticate(user=courier.user)

        response = api_client.get("/api/v1/dispatch/", HTTP_X_CLIENT_APP="courier")

        assert response.status_code == 200
        assert response["X-Request-ID"] == cid
