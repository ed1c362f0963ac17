"""Integration tests for the Cart API via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain

from ordering.api.errors import register_error_handlers
from ordering.api.routes import cart_router
from ordering.cart.cart import ShoppingCart

CUSTOMER = {"X-User-Id": "cust-001"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(cart_router)
    register_error_handlers(app)
    return TestClient(app)


class TestGetCart:
    def test_cart_is_created_on_first_read(self, client):
        response = client.get("/cart", headers=CUSTOMER)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["userId"] == "cust-001"
        assert body["data"]["items"] == []
        assert body["data"]["total"] == 0.0
        assert current_domain.repository_for(ShoppingCart).for_customer("cust-001") is not None

    def test_requires_authentication(self, client):
        response = client.get("/cart")

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Authentication required"}

    def test_unknown_user(self, client):
        response = client.get("/cart", headers={"X-User-Id": "ghost"})
        assert response.status_code == 401

    def test_inactive_user(self, client):
        response = client.get("/cart", headers={"X-User-Id": "cust-inactive"})
        assert response.status_code == 403


class TestAddToCart:
    def test_add_item(self, client):
        response = client.post("/cart", json={"productId": "prod-ring", "quantity": 2}, headers=CUSTOMER)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Item added to cart"
        cart = body["data"]
        assert cart["itemCount"] == 2
        assert cart["items"][0]["unitPrice"] == 2499.0
        assert cart["items"][0]["lineTotal"] == 4998.0
        assert cart["subtotal"] == 4998.0
        assert cart["shipping"] == 99.0
        assert cart["total"] == 5097.0

    def test_client_price_is_ignored(self, client):
        response = client.post(
            "/cart",
            json={"productId": "prod-ring", "quantity": 1, "unitPrice": 1.0},
            headers=CUSTOMER,
        )
        assert response.json()["data"]["items"][0]["unitPrice"] == 2499.0

    def test_unknown_product(self, client):
        response = client.post("/cart", json={"productId": "prod-missing"}, headers=CUSTOMER)

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_insufficient_stock_message(self, client):
        response = client.post("/cart", json={"productId": "prod-earrings", "quantity": 5}, headers=CUSTOMER)

        assert response.status_code == 400
        assert response.json()["message"] == "quantity: Insufficient stock for Pearl Earrings"

    def test_missing_product_id(self, client):
        response = client.post("/cart", json={"quantity": 1}, headers=CUSTOMER)

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestUpdateAndRemove:
    def test_update_quantity(self, client):
        client.post("/cart", json={"productId": "prod-ring"}, headers=CUSTOMER)

        response = client.put("/cart/prod-ring", json={"quantity": 3}, headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["message"] == "Cart updated"
        assert response.json()["data"]["items"][0]["quantity"] == 3

    def test_update_missing_item(self, client):
        response = client.put("/cart/prod-ring", json={"quantity": 3}, headers=CUSTOMER)

        assert response.status_code == 404
        assert response.json()["message"] == "Item not found in cart"

    def test_remove_variant_line(self, client):
        client.post("/cart", json={"productId": "prod-necklace", "variantId": "var-16"}, headers=CUSTOMER)
        client.post("/cart", json={"productId": "prod-necklace", "variantId": "var-18"}, headers=CUSTOMER)

        response = client.delete("/cart/prod-necklace", params={"variantId": "var-16"}, headers=CUSTOMER)

        assert response.status_code == 200
        items = response.json()["data"]["items"]
        assert [i["variantId"] for i in items] == ["var-18"]

    def test_clear_cart(self, client):
        client.post("/cart", json={"productId": "prod-ring"}, headers=CUSTOMER)

        response = client.delete("/cart", headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["message"] == "Cart cleared"
        assert response.json()["data"]["items"] == []

    def test_carts_are_private(self, client):
        client.post("/cart", json={"productId": "prod-ring"}, headers=CUSTOMER)

        response = client.get("/cart", headers={"X-User-Id": "cust-002"})

        assert response.json()["data"]["items"] == []
