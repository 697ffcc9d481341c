"""Tests for API middleware."""

from fastapi.testclient import TestClient


class TestRequestIdMiddleware:
    """Tests for request ID correlation middleware."""

    def test_generates_request_id_if_not_provided(self, client: TestClient) -> None:
        """Should generate request ID if not in request headers."""
        response = client.get("/health")
        assert response.status_code == 200
        assert "X-Request-ID" in response.headers
        # UUID format
        assert len(response.headers["X-Request-ID"]) == 36

    def test_uses_provided_request_id(self, client: TestClient) -> None:
        """Should use request ID from request headers."""
        custom_id = "till-7-request-42"
        response = client.get("/cart", headers={"X-Request-ID": custom_id})
        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == custom_id

    def test_error_responses_carry_request_id(self, client: TestClient) -> None:
        """Domain error bodies include the correlation ID."""
        response = client.post(
            "/cart/items",
            json={"product_id": "ghost"},
            headers={"X-Request-ID": "req-404"},
        )
        assert response.status_code == 404
        assert response.json()["request_id"] == "req-404"
        assert response.headers["X-Request-ID"] == "req-404"
