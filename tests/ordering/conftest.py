import json

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()


# ---------------------------------------------------------------------------
# Shared data builders
# ---------------------------------------------------------------------------
ADDRESS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address1": "12 Analytical Way",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
}


@pytest.fixture
def address():
    return dict(ADDRESS)


@pytest.fixture
def register_product():
    """Register a product through the domain and return its id."""
    from ordering.inventory.management import RegisterProduct
    from protean import current_domain

    counter = {"n": 0}

    def _register(price=10.0, stock=5, name=None, sku=None, **kwargs):
        counter["n"] += 1
        command = RegisterProduct(
            name=name or f"Product {counter['n']}",
            sku=sku or f"SKU-{counter['n']:04d}",
            price=price,
            stock=stock,
            **kwargs,
        )
        return current_domain.process(command, asynchronous=False)

    return _register


@pytest.fixture
def place_order(address):
    """Place an order for explicit lines and return its id."""
    from ordering.order.creation import PlaceOrder
    from protean import current_domain

    def _place(customer_id, lines=None, **kwargs):
        command = PlaceOrder(
            customer_id=customer_id,
            items=json.dumps([{"product_id": pid, "quantity": qty} for pid, qty in lines]) if lines else None,
            shipping_address=json.dumps(kwargs.pop("shipping_address", address)),
            **kwargs,
        )
        return current_domain.process(command, asynchronous=False)

    return _place
