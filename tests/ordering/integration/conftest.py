import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api import cart_router, order_router, payment_router, product_router
from ordering.api.errors import register_error_handlers

ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(payment_router)
    app.include_router(product_router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def create_product(client):
    counter = {"n": 0}

    def _create(price=10.0, stock=5, **kwargs):
        counter["n"] += 1
        payload = {
            "name": f"API Product {counter['n']}",
            "sku": f"API-{counter['n']:03d}",
            "price": price,
            "stock": stock,
        }
        payload.update(kwargs)
        response = client.post("/products", json=payload, headers=ADMIN)
        assert response.status_code == 201
        return response.json()["product_id"]

    return _create
