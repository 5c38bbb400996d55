"""Shared BDD fixtures and step definitions for checkout and order flows."""

import json

import pytest
from ordering.cart.items import AddToCart
from ordering.errors import InsufficientStock, InvalidTransition, RefundExceedsTotal
from ordering.inventory.management import RegisterProduct
from ordering.inventory.product import Product
from ordering.order.cancellation import CancelOrder
from ordering.order.creation import PlaceOrder
from ordering.order.order import Order
from ordering.order.payment import PayOrder
from ordering.order.refund import ProcessRefund
from ordering.order.tracking import UpdateOrderStatus
from protean import current_domain
from pytest_bdd import given, parsers, then, when

ADDRESS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address1": "12 Analytical Way",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
}


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def products():
    """Product ids by name."""
    return {}


@pytest.fixture()
def outcome():
    """Container for the order id, transaction id and any captured error."""
    return {"order_id": None, "transaction_id": None, "exc": None}


def _order(outcome):
    return current_domain.repository_for(Order).get(outcome["order_id"])


def _checkout(customer_id, outcome, shipping_method, coupon_code=None, items=None):
    try:
        outcome["order_id"] = current_domain.process(
            PlaceOrder(
                customer_id=customer_id,
                items=json.dumps(items) if items else None,
                shipping_address=json.dumps(ADDRESS),
                shipping_method=shipping_method,
                coupon_code=coupon_code,
            ),
            asynchronous=False,
        )
    except InsufficientStock as exc:
        outcome["exc"] = exc


def _cancel(customer_id, outcome):
    try:
        current_domain.process(
            CancelOrder(order_id=outcome["order_id"], actor_id=customer_id, actor_role="customer"),
            asynchronous=False,
        )
    except InvalidTransition as exc:
        outcome["exc"] = exc


def _refund(outcome, amount):
    try:
        current_domain.process(
            ProcessRefund(
                transaction_id=outcome["transaction_id"],
                amount=amount,
                reason="Customer complaint",
                actor_id="admin-1",
                actor_role="admin",
            ),
            asynchronous=False,
        )
    except RefundExceedsTotal as exc:
        outcome["exc"] = exc


def _mark(outcome, status):
    current_domain.process(
        UpdateOrderStatus(
            order_id=outcome["order_id"],
            actor_role="admin",
            status=status,
            message=f"Order {status}",
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced at {price:f} with {stock:d} in stock'))
def _(products, name, price, stock):
    products[name] = current_domain.process(
        RegisterProduct(name=name, sku=name.upper().replace(" ", "-"), price=price, stock=stock),
        asynchronous=False,
    )


@given(parsers.cfparse('the customer has {qty:d} "{name}" in the cart'))
def _(products, customer_id, qty, name):
    current_domain.process(
        AddToCart(customer_id=customer_id, product_id=products[name], quantity=qty),
        asynchronous=False,
    )


@given(parsers.cfparse('the customer checked out with "{method}" shipping'))
def _(customer_id, outcome, method):
    _checkout(customer_id, outcome, method)
    assert outcome["exc"] is None


@given("the customer paid for the order")
def _(customer_id, outcome):
    result = current_domain.process(
        PayOrder(
            order_id=outcome["order_id"],
            actor_id=customer_id,
            actor_role="customer",
            payment_method="credit_card",
        ),
        asynchronous=False,
    )
    outcome["transaction_id"] = result.transaction_id


@given(parsers.cfparse('staff marked the order "{status}"'))
def _(outcome, status):
    _mark(outcome, status)


@given(parsers.cfparse("an admin refunded {amount:f}"))
def _(outcome, amount):
    _refund(outcome, amount)
    assert outcome["exc"] is None


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer checks out with "{method}" shipping'))
def _(customer_id, outcome, method):
    _checkout(customer_id, outcome, method)


@when(parsers.cfparse('the customer checks out with "{method}" shipping and coupon "{code}"'))
def _(customer_id, outcome, method, code):
    _checkout(customer_id, outcome, method, coupon_code=code)


@when(parsers.cfparse('the customer checks out for {qty:d} "{name}"'))
def _(customer_id, outcome, products, qty, name):
    _checkout(customer_id, outcome, "standard", items=[{"product_id": products[name], "quantity": qty}])


@when("the customer cancels the order")
def _(customer_id, outcome):
    _cancel(customer_id, outcome)


@when(parsers.cfparse('staff mark the order "{status}"'))
def _(outcome, status):
    _mark(outcome, status)


@when(parsers.cfparse("an admin refunds {amount:f}"))
def _(outcome, amount):
    _refund(outcome, amount)


@when(parsers.cfparse('the customer requests a return because "{reason}"'))
def _(customer_id, outcome, reason):
    from ordering.order.returns import RequestReturn

    current_domain.process(
        RequestReturn(order_id=outcome["order_id"], customer_id=customer_id, reason=reason),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order is {status}"))
def _(outcome, status):
    assert _order(outcome).status == status


@then(parsers.cfparse("the order total is {total:f}"))
def _(outcome, total):
    assert _order(outcome).pricing.grand_total == pytest.approx(total)


@then(parsers.cfparse("the order discount is {discount:f}"))
def _(outcome, discount):
    assert _order(outcome).pricing.discount_total == pytest.approx(discount)


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def _(products, name, stock):
    assert current_domain.repository_for(Product).get(products[name]).stock == stock


@then("the cart is empty")
def _(customer_id):
    from ordering.cart.cart import ShoppingCart

    assert current_domain.repository_for(ShoppingCart).get(customer_id).is_empty


@then("checkout fails for lack of stock")
def _(outcome):
    assert isinstance(outcome["exc"], InsufficientStock)


@then("no order exists")
def _():
    assert current_domain.repository_for(Order)._dao.query.all().total == 0


@then("the request is rejected as an invalid transition")
def _(outcome):
    assert isinstance(outcome["exc"], InvalidTransition)


@then(parsers.cfparse('the latest tracking entry is "{status}"'))
def _(outcome, status):
    assert _order(outcome).tracking_history[-1].status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def _(outcome, status):
    assert _order(outcome).payment_status == status


@then("the refund is rejected")
def _(outcome):
    assert isinstance(outcome["exc"], RefundExceedsTotal)


@then(parsers.cfparse("the refunded amount is {amount:f}"))
def _(outcome, amount):
    assert _order(outcome).refund_amount == pytest.approx(amount)
