"""Integration tests for order, refund and product endpoints."""

from datetime import UTC, datetime, timedelta

from ordering.inventory.product import Product
from ordering.order.order import Order
from protean import current_domain

CUSTOMER = {"X-User-Id": "cust-001", "X-User-Role": "customer"}
OTHER_CUSTOMER = {"X-User-Id": "cust-002", "X-User-Role": "customer"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
MODERATOR = {"X-User-Id": "mod-1", "X-User-Role": "moderator"}

ADDRESS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address1": "12 Analytical Way",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
}


def _place(client, product_id, quantity=1, headers=CUSTOMER, **extra):
    payload = {"items": [{"product_id": product_id, "quantity": quantity}], "shipping_address": ADDRESS}
    payload.update(extra)
    return client.post("/orders", json=payload, headers=headers)


class TestPlaceOrderEndpoint:
    def test_place_order(self, client, create_product):
        product_id = create_product(price=10.0, stock=5)

        response = _place(client, product_id, quantity=2)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["total"] == 31.59
        assert data["tracking_history"][0]["message"] == "Order placed successfully"
        assert current_domain.repository_for(Product).get(product_id).stock == 3

    def test_insufficient_stock(self, client, create_product):
        product_id = create_product(stock=1)

        response = _place(client, product_id, quantity=2)

        assert response.status_code == 400
        assert response.json()["available"] == 1
        assert current_domain.repository_for(Order)._dao.query.all().total == 0

    def test_missing_address_field(self, client, create_product):
        product_id = create_product()
        response = client.post(
            "/orders",
            json={"items": [{"product_id": product_id, "quantity": 1}], "shipping_address": {"first_name": "Ada"}},
            headers=CUSTOMER,
        )
        assert response.status_code == 422

    def test_checkout_from_cart(self, client, create_product):
        product_id = create_product(stock=5)
        client.post("/cart/items", json={"product_id": product_id, "quantity": 2}, headers=CUSTOMER)

        response = client.post("/orders", json={"shipping_address": ADDRESS}, headers=CUSTOMER)

        assert response.status_code == 201
        assert response.json()["item_count"] == 2
        assert client.get("/cart", headers=CUSTOMER).json()["items"] == []

    def test_requires_identity(self, client, create_product):
        product_id = create_product()
        response = client.post(
            "/orders",
            json={"items": [{"product_id": product_id, "quantity": 1}], "shipping_address": ADDRESS},
        )
        assert response.status_code == 401


class TestOrderReadEndpoints:
    def test_list_own_orders(self, client, create_product):
        product_id = create_product(stock=10)
        _place(client, product_id)
        _place(client, product_id, headers=OTHER_CUSTOMER)

        response = client.get("/orders", headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1

    def test_detail_of_another_customers_order_is_forbidden(self, client, create_product):
        order_id = _place(client, create_product()).json()["id"]

        assert client.get(f"/orders/{order_id}", headers=OTHER_CUSTOMER).status_code == 403
        assert client.get(f"/orders/{order_id}", headers=MODERATOR).status_code == 200

    def test_unknown_order(self, client):
        assert client.get("/orders/missing-order", headers=CUSTOMER).status_code == 404

    def test_stats_for_admin_only(self, client, create_product):
        _place(client, create_product())

        assert client.get("/orders/stats", headers=CUSTOMER).status_code == 403
        response = client.get("/orders/stats", headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["total_orders"] == 1


class TestOrderChangeEndpoints:
    def test_cancel_restores_stock(self, client, create_product):
        product_id = create_product(stock=5)
        order_id = _place(client, product_id, quantity=2).json()["id"]

        response = client.put(f"/orders/{order_id}/cancel", json={"reason": "Changed my mind"}, headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert current_domain.repository_for(Product).get(product_id).stock == 5

    def test_cancel_shipped_order_conflicts(self, client, create_product):
        order_id = _place(client, create_product()).json()["id"]
        client.put(f"/orders/{order_id}/status", json={"status": "shipped", "message": "Shipped"}, headers=ADMIN)

        response = client.put(f"/orders/{order_id}/cancel", headers=CUSTOMER)

        assert response.status_code == 409

    def test_customer_cannot_update_status(self, client, create_product):
        order_id = _place(client, create_product()).json()["id"]
        response = client.put(
            f"/orders/{order_id}/status",
            json={"status": "shipped", "message": "Shipped"},
            headers=CUSTOMER,
        )
        assert response.status_code == 403

    def test_return_after_delivery(self, client, create_product):
        order_id = _place(client, create_product()).json()["id"]
        client.put(f"/orders/{order_id}/status", json={"status": "delivered", "message": "Delivered"}, headers=ADMIN)

        response = client.post(f"/orders/{order_id}/return", json={"reason": "Wrong size"}, headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["status"] == "returned"

    def test_return_outside_window_conflicts(self, client, create_product):
        order_id = _place(client, create_product()).json()["id"]
        client.put(f"/orders/{order_id}/status", json={"status": "delivered", "message": "Delivered"}, headers=ADMIN)
        repo = current_domain.repository_for(Order)
        order = repo.get(order_id)
        order.delivered_date = datetime.now(UTC) - timedelta(days=45)
        repo.add(order)

        response = client.post(f"/orders/{order_id}/return", json={"reason": "Late"}, headers=CUSTOMER)

        assert response.status_code == 409


class TestPaymentEndpoints:
    def test_pay_and_refund(self, client, create_product):
        order_id = _place(client, create_product(price=100.0)).json()["id"]

        paid = client.post(f"/orders/{order_id}/pay", json={"payment_method": "credit_card"}, headers=CUSTOMER)
        assert paid.status_code == 200
        transaction_id = paid.json()["transaction_id"]

        refund = client.post(
            "/payment/refund",
            json={"transaction_id": transaction_id, "amount": 8.0, "reason": "Price adjustment"},
            headers=ADMIN,
        )
        assert refund.status_code == 200
        data = refund.json()
        assert data["order_id"] == order_id
        assert data["payment_status"] == "partially_refunded"
        assert data["total_refunded"] == 8.0

    def test_refund_too_large(self, client, create_product):
        order_id = _place(client, create_product(price=100.0)).json()["id"]
        transaction_id = client.post(f"/orders/{order_id}/pay", json={}, headers=CUSTOMER).json()["transaction_id"]

        response = client.post(
            "/payment/refund",
            json={"transaction_id": transaction_id, "amount": 500.0, "reason": "Oops"},
            headers=ADMIN,
        )

        assert response.status_code == 400
        assert response.json()["refundable"] == 108.0

    def test_refund_requires_admin(self, client):
        response = client.post(
            "/payment/refund",
            json={"transaction_id": "tx_1", "amount": 5.0, "reason": "Nope"},
            headers=CUSTOMER,
        )
        assert response.status_code == 403

    def test_declined_payment(self, client, create_product):
        from ordering.payment import get_gateway

        order_id = _place(client, create_product()).json()["id"]
        get_gateway().configure(should_succeed=False, failure_reason="Card declined")

        response = client.post(f"/orders/{order_id}/pay", json={}, headers=CUSTOMER)

        assert response.status_code == 400
        assert response.json()["code"] == "PAYMENT_DECLINED"
        assert response.json()["details"] == "Card declined"


class TestProductEndpoints:
    def test_register_requires_admin(self, client):
        response = client.post("/products", json={"name": "X", "sku": "X-1", "price": 1.0}, headers=CUSTOMER)
        assert response.status_code == 403

    def test_duplicate_sku(self, client, create_product):
        create_product(sku="DUP-1")
        response = client.post("/products", json={"name": "Y", "sku": "DUP-1", "price": 1.0}, headers=ADMIN)
        assert response.status_code == 400

    def test_receive_stock(self, client, create_product):
        product_id = create_product(stock=0)

        response = client.post(f"/products/{product_id}/stock", json={"quantity": 7}, headers=ADMIN)

        assert response.status_code == 200
        assert response.json()["stock"] == 7
        assert response.json()["stock_status"] == "in-stock"

    def test_read_stock(self, client, create_product):
        product_id = create_product(stock=3)
        response = client.get(f"/products/{product_id}/stock", headers=CUSTOMER)
        assert response.json()["stock_status"] == "low-stock"

    def test_correct_stock_clamps_at_zero(self, client, create_product):
        product_id = create_product(stock=2)

        response = client.post(
            f"/products/{product_id}/stock-corrections",
            json={"quantity": 5, "note": "Water damage"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["stock"] == 0
        assert response.json()["stock_status"] == "out-of-stock"

    def test_correct_stock_requires_admin(self, client, create_product):
        product_id = create_product(stock=2)

        response = client.post(f"/products/{product_id}/stock-corrections", json={"quantity": 1}, headers=CUSTOMER)

        assert response.status_code == 403
