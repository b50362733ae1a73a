"""Tests for the FastAPI routes."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from src.core.database import get_db
from src.core.security import SecurityUtils
from src.main import app
from src.models.users import UserRole
from src.services.email_service import get_notification_sink
from src.services.payment_service import get_payment_oracle

from conftest import RecordingSink, StubOracle


def auth(user):
    token, _, _ = SecurityUtils.create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    sink = RecordingSink()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_oracle] = lambda: StubOracle(accept=True)
    app.dependency_overrides[get_notification_sink] = lambda: sink
    client = TestClient(app)
    client.sink = sink
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def catalogue(factory):
    shop = factory.shop()
    listing = factory.shop_listing(shop, stock=5, price="12.50")
    return shop, listing


class TestAuth:
    def test_missing_token(self, client):
        response = client.get("/api/v1/cart/")
        assert response.status_code == 401

    def test_garbage_token(self, client):
        response = client.get("/api/v1/cart/", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_expired_token(self, client, customer):
        token, _, _ = SecurityUtils.create_access_token(
            {"sub": str(customer.id)}, expires_delta=timedelta(minutes=-1)
        )
        response = client.get("/api/v1/cart/", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_wrong_role(self, client, factory):
        retailer = factory.user(UserRole.RETAILER)
        response = client.get("/api/v1/cart/", headers=auth(retailer))
        assert response.status_code == 403


class TestCartAndCheckout:
    def test_cart_to_order(self, client, customer, customer_address, catalogue):
        _, listing = catalogue
        headers = auth(customer)

        response = client.post(
            "/api/v1/cart/items",
            json={"shop_inventory_id": listing.id, "quantity": 2},
            headers=headers,
        )
        assert response.status_code == 201
        client.post("/api/v1/cart/items", json={"shop_inventory_id": listing.id, "quantity": 1}, headers=headers)

        cart = client.get("/api/v1/cart/", headers=headers).json()
        assert len(cart["items"]) == 1
        assert float(cart["items"][0]["quantity"]) == 3
        assert float(cart["total"]) == 37.5

        response = client.post(
            "/api/v1/orders/",
            json={
                "delivery_address_id": customer_address.id,
                "payment_method": "upi",
                "payment": {"gateway_order_id": "o1", "gateway_payment_id": "p1", "signature": "s"},
            },
            headers=headers,
        )
        assert response.status_code == 201
        [order_id] = response.json()["order_ids"]
        assert client.sink.events == [("order_created", order_id)]

        orders = client.get("/api/v1/orders/", headers=headers).json()
        assert [o["id"] for o in orders] == [order_id]
        assert orders[0]["payment_status"] == "completed"
        assert float(orders[0]["total_amount"]) == 37.5
        assert client.get("/api/v1/cart/", headers=headers).json()["items"] == []

    def test_fractional_quantity_rejected(self, client, customer, catalogue):
        _, listing = catalogue
        response = client.post(
            "/api/v1/cart/items",
            json={"shop_inventory_id": listing.id, "quantity": 1.5},
            headers=auth(customer),
        )
        assert response.status_code == 422

    def test_empty_cart_is_400(self, client, customer, customer_address):
        response = client.post(
            "/api/v1/orders/",
            json={"delivery_address_id": customer_address.id, "payment_method": "cash_on_delivery"},
            headers=auth(customer),
        )
        assert response.status_code == 400

    def test_insufficient_stock_is_409(self, client, customer, customer_address, catalogue):
        _, listing = catalogue
        headers = auth(customer)
        client.post("/api/v1/cart/items", json={"shop_inventory_id": listing.id, "quantity": 6}, headers=headers)

        response = client.post(
            "/api/v1/orders/",
            json={"delivery_address_id": customer_address.id, "payment_method": "cash_on_delivery"},
            headers=headers,
        )
        assert response.status_code == 409

    def test_payment_rejected_is_402(self, client, customer, customer_address, catalogue):
        _, listing = catalogue
        headers = auth(customer)
        client.post("/api/v1/cart/items", json={"shop_inventory_id": listing.id, "quantity": 1}, headers=headers)
        app.dependency_overrides[get_payment_oracle] = lambda: StubOracle(accept=False)

        response = client.post(
            "/api/v1/orders/",
            json={
                "delivery_address_id": customer_address.id,
                "payment_method": "credit_card",
                "payment": {"gateway_order_id": "o1", "gateway_payment_id": "p1", "signature": "bad"},
            },
            headers=headers,
        )
        assert response.status_code == 402


class TestSellerFlow:
    def place(self, client, customer, address, listing, quantity=1):
        headers = auth(customer)
        client.post("/api/v1/cart/items", json={"shop_inventory_id": listing.id, "quantity": quantity}, headers=headers)
        response = client.post(
            "/api/v1/orders/",
            json={"delivery_address_id": address.id, "payment_method": "cash_on_delivery"},
            headers=headers,
        )
        return response.json()["order_ids"][0]

    def test_ship_deliver_and_collect_cash(self, client, customer, customer_address, catalogue):
        shop, listing = catalogue
        order_id = self.place(client, customer, customer_address, listing)
        seller = auth(shop.owner)

        orders = client.get("/api/v1/seller/orders/", headers=seller).json()
        item_id = orders[0]["items"][0]["id"]

        for status in ("processed", "shipped", "delivered"):
            response = client.patch(
                f"/api/v1/seller/orders/items/{item_id}/status", json={"status": status}, headers=seller
            )
            assert response.status_code == 200
            assert response.json()["status"] == status

        response = client.patch(f"/api/v1/seller/orders/{order_id}/payment", json={}, headers=seller)
        assert response.status_code == 200
        assert response.json()["payment_status"] == "completed"
        assert response.json()["status"] == "delivered"

    def test_invalid_transition_is_422(self, client, customer, customer_address, catalogue):
        shop, listing = catalogue
        self.place(client, customer, customer_address, listing)
        seller = auth(shop.owner)
        item_id = client.get("/api/v1/seller/orders/", headers=seller).json()[0]["items"][0]["id"]

        response = client.patch(
            f"/api/v1/seller/orders/items/{item_id}/status", json={"status": "delivered"}, headers=seller
        )
        assert response.status_code == 422

    def test_customer_cancels_through_api(self, client, customer, customer_address, catalogue):
        _, listing = catalogue
        order_id = self.place(client, customer, customer_address, listing, quantity=2)

        response = client.post(f"/api/v1/orders/{order_id}/cancel", headers=auth(customer))

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        listing_out = client.get(f"/api/v1/inventory/listings/{listing.id}").json()
        assert float(listing_out["stock_quantity"]) == 5

    def test_return_flow(self, client, customer, customer_address, catalogue):
        shop, listing = catalogue
        self.place(client, customer, customer_address, listing)
        seller = auth(shop.owner)
        item_id = client.get("/api/v1/seller/orders/", headers=seller).json()[0]["items"][0]["id"]
        for status in ("processed", "shipped", "delivered"):
            client.patch(f"/api/v1/seller/orders/items/{item_id}/status", json={"status": status}, headers=seller)

        response = client.post("/api/v1/returns/", json={"order_item_id": item_id}, headers=auth(customer))
        assert response.status_code == 201
        assert response.json()["status"] == "to_return"

        pending = client.get("/api/v1/returns/", headers=seller).json()
        assert [r["order_item_id"] for r in pending] == [item_id]

        response = client.post(f"/api/v1/returns/{item_id}/confirm", headers=seller)
        assert response.status_code == 200
        assert response.json()["status"] == "returned"

    def test_order_hidden_from_strangers(self, client, factory, customer, customer_address, catalogue):
        _, listing = catalogue
        order_id = self.place(client, customer, customer_address, listing)

        response = client.get(f"/api/v1/orders/{order_id}", headers=auth(factory.customer()))
        assert response.status_code == 403


class TestWholesaleAndInventory:
    def test_proxy_purchase(self, client, factory):
        warehouse = factory.warehouse()
        source = factory.warehouse_listing(warehouse, stock=30, price="4.00")
        retailer = factory.user(UserRole.RETAILER)
        factory.shop(retailer)

        response = client.post(
            "/api/v1/wholesale-orders/",
            json={
                "warehouse_inventory_id": source.id,
                "quantity": 10,
                "payment_method": "cash_on_delivery",
                "proxy": True,
                "selling_price": "6.00",
            },
            headers=auth(retailer),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["shop_inventory_id"] is not None

        inventory = client.get("/api/v1/inventory/", headers=auth(retailer)).json()
        assert inventory["total"] == 1
        assert inventory["shop_items"][0]["is_proxy_item"] is True

        history = client.get("/api/v1/wholesale-orders/", headers=auth(retailer)).json()
        assert history[0]["status"] == "delivered"
        assert history[0]["is_proxy_order"] is True

    def test_create_and_restock_listing(self, client, factory):
        wholesaler = factory.user(UserRole.WHOLESALER)
        factory.warehouse(wholesaler)
        headers = auth(wholesaler)

        response = client.post(
            "/api/v1/inventory/listings",
            json={"name": "Basmati 25kg", "price": "40.00", "stock_quantity": 3},
            headers=headers,
        )
        assert response.status_code == 201
        listing_id = response.json()["id"]

        response = client.post(f"/api/v1/inventory/{listing_id}/restock", json={"quantity": 7}, headers=headers)
        assert response.status_code == 200
        assert float(response.json()["stock_quantity"]) == 10

    def test_address_endpoints(self, client, customer):
        headers = auth(customer)
        response = client.post(
            "/api/v1/addresses/",
            json={
                "street_address": "1 MG Road",
                "city": "Pune",
                "state": "MH",
                "postal_code": "411001",
                "country": "IN",
                "is_primary": True,
            },
            headers=headers,
        )
        assert response.status_code == 201
        assert [a["id"] for a in client.get("/api/v1/addresses/", headers=headers).json()] == [response.json()["id"]]
