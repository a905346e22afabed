"""
End-to-end checks against a running shopcrm deployment.

Skipped unless SHOPCRM_BASE_URL points at a live API whose owner account was
created by ``python -m shopcrm.seed`` (SEED_OWNER_EMAIL / SEED_OWNER_PASSWORD).
"""

import os
import time
import uuid

import httpx
import pytest

BASE_URL = os.getenv("SHOPCRM_BASE_URL")
HEALTH_CHECK_RETRIES = 30
HEALTH_CHECK_DELAY = 2

pytestmark = pytest.mark.skipif(not BASE_URL, reason="SHOPCRM_BASE_URL not set")


class TestPlatformIntegration:
    """Order lifecycle through the public HTTP API"""

    @classmethod
    def setup_class(cls):
        cls.client = httpx.Client(base_url=BASE_URL, timeout=30.0)
        cls.wait_for_service()
        cls.owner_headers = cls.login(
            os.getenv("SEED_OWNER_EMAIL", "owner@example.com"),
            os.getenv("SEED_OWNER_PASSWORD", "change-me-now"),
            "admin",
        )
        cls.customer_email = f"it-{uuid.uuid4().hex[:8]}@example.com"
        response = cls.client.post("/auth/register", json={
            "name": "Integration Customer",
            "email": cls.customer_email,
            "password": "integration-pass",
        })
        assert response.status_code == 201
        cls.customer_headers = cls.login(cls.customer_email, "integration-pass", "customer")

    @classmethod
    def teardown_class(cls):
        cls.client.close()

    @classmethod
    def wait_for_service(cls):
        for attempt in range(HEALTH_CHECK_RETRIES):
            try:
                if cls.client.get("/health").status_code == 200:
                    return
            except httpx.HTTPError as e:
                print(f"Attempt {attempt + 1}/{HEALTH_CHECK_RETRIES}: {e}")
            time.sleep(HEALTH_CHECK_DELAY)
        raise RuntimeError("Service failed to start within timeout period")

    @classmethod
    def login(cls, email: str, password: str, user_type: str) -> dict:
        response = cls.client.post("/auth/token", json={"email": email, "password": password, "user_type": user_type})
        assert response.status_code == 200
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    def test_health_endpoints(self):
        for endpoint in ["/health", "/health/live", "/health/ready"]:
            response = self.client.get(endpoint)
            assert response.status_code in [200, 503]
            assert "status" in response.json()

    def test_metrics_endpoint(self):
        data = self.client.get("/metrics").json()
        assert "uptime_seconds" in data

    def test_order_lifecycle(self):
        product = self.client.post(
            "/products/",
            json={"name": f"IT Product {int(time.time())}", "price": 1000, "stock": 2},
            headers=self.owner_headers,
        )
        assert product.status_code == 201
        product_id = product.json()["id"]

        response = self.client.post("/cart/", json={"product_id": product_id, "quantity": 2}, headers=self.customer_headers)
        assert response.status_code == 201

        response = self.client.post(
            "/orders/",
            json={"shipping_address": "1-1 Integration St", "recipient_name": "Integration Customer"},
            headers=self.customer_headers,
        )
        assert response.status_code == 201
        order = response.json()
        assert order["subtotal_amount"] == 2000
        assert order["total_amount"] == order["subtotal_amount"] + order["shipping_fee"]

        stock = self.client.get(f"/products/{product_id}", headers=self.owner_headers).json()["stock"]
        assert stock == 0

        response = self.client.put(f"/orders/{order['id']}/status", json={"status": "SHIPPED"}, headers=self.owner_headers)
        assert response.json()["status"] == "SHIPPED"

        response = self.client.delete(f"/orders/{order['id']}", headers=self.customer_headers)
        assert response.status_code == 400

    def test_error_handling(self):
        assert self.client.get("/customers/").status_code == 401
        assert self.client.get("/customers/", headers=self.customer_headers).status_code == 403
        response = self.client.post("/customers/", json={"invalid": "data"}, headers=self.owner_headers)
        assert response.status_code == 422

    def test_request_tracking(self):
        response = self.client.get("/health", headers={"X-Request-ID": "integration-check"})
        assert response.headers.get("X-Request-ID") == "integration-check"

    @pytest.mark.performance
    def test_performance_baseline(self):
        for endpoint in ["/customers/", "/products/", "/orders/", "/audit-logs/"]:
            start = time.time()
            response = self.client.get(endpoint, headers=self.owner_headers)
            duration = time.time() - start
            assert response.status_code == 200
            assert duration < 1.0, f"{endpoint} took {duration:.3f}s"


if __name__ == "__main__":
    pytest.main([__file__, "-v", "-s"])
