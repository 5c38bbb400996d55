"""Tests for the Order status tracker: history, milestones, cancellation and returns."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.errors import InvalidTransition
from ordering.order.events import OrderCancelled, OrderPlaced, OrderStatusUpdated, ReturnRequested
from ordering.order.order import Order, OrderStatus, PaymentStatus, estimate_delivery
from ordering.pricing.calculator import calculate_pricing
from ordering.settings import PricingPolicy, set_policy
from protean.exceptions import ValidationError

ADDRESS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address1": "12 Analytical Way",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
}

PLACED_AT = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _make_order(lines=((10.0, 2),), **overrides):
    items = [
        {
            "product_id": f"prod-{n}",
            "name": f"Product {n}",
            "sku": f"SKU-{n}",
            "unit_price": price,
            "quantity": qty,
        }
        for n, (price, qty) in enumerate(lines, start=1)
    ]
    defaults = {
        "customer_id": "cust-001",
        "order_number": "TC12345678ABCD",
        "items": items,
        "pricing": calculate_pricing(list(lines)).pricing,
        "shipping_address": dict(ADDRESS),
        "billing_address": dict(ADDRESS),
        "shipping_method": "standard",
        "estimated_delivery": PLACED_AT + timedelta(days=7),
        "placed_at": PLACED_AT,
    }
    defaults.update(overrides)
    return Order.place(**defaults)


def _delivered_order(delivered_at):
    order = _make_order()
    order.add_tracking_update("confirmed", "Order confirmed", now=PLACED_AT)
    order.add_tracking_update("shipped", "Order shipped", now=PLACED_AT + timedelta(days=1))
    order.add_tracking_update("delivered", "Order delivered", now=delivered_at)
    return order


class TestPlace:
    def test_starts_pending_with_one_tracking_entry(self):
        order = _make_order()

        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert len(order.tracking) == 1
        entry = order.tracking_history[0]
        assert entry.status == "pending"
        assert entry.message == "Order placed successfully"
        assert entry.sequence == 1

    def test_snapshots_items_and_pricing(self):
        order = _make_order(lines=((10.0, 2), (5.5, 1)))

        assert order.item_count == 3
        assert order.pricing.subtotal == pytest.approx(25.5)
        assert {item.sku for item in order.items} == {"SKU-1", "SKU-2"}

    def test_raises_order_placed(self):
        order = _make_order()
        event = order._events[-1]

        assert isinstance(event, OrderPlaced)
        assert event.order_number == "TC12345678ABCD"
        assert event.grand_total == pytest.approx(31.59)
        assert event.item_count == 2

    def test_pricing_must_match_items(self):
        with pytest.raises(ValidationError) as exc:
            _make_order(pricing=calculate_pricing([(99.0, 1)]).pricing)
        assert "subtotal" in exc.value.messages

    def test_address_requires_city(self):
        address = dict(ADDRESS)
        del address["city"]
        with pytest.raises(ValidationError):
            _make_order(shipping_address=address)


class TestTrackingUpdates:
    def test_appends_entry_and_moves_status(self):
        order = _make_order()
        order.add_tracking_update("confirmed", "Payment verified", location="Warehouse 1")

        assert order.status == "confirmed"
        latest = order.tracking_history[-1]
        assert latest.sequence == 2
        assert latest.location == "Warehouse 1"
        assert isinstance(order._events[-1], OrderStatusUpdated)

    def test_history_is_never_rewritten(self):
        order = _make_order()
        order.add_tracking_update("confirmed", "Confirmed")
        order.add_tracking_update("processing", "Packing")

        assert [e.status for e in order.tracking_history] == ["pending", "confirmed", "processing"]
        assert [e.sequence for e in order.tracking_history] == [1, 2, 3]

    def test_shipped_date_first_write_wins(self):
        order = _make_order()
        first = PLACED_AT + timedelta(days=1)
        order.add_tracking_update("shipped", "Shipped", now=first)
        order.add_tracking_update("shipped", "Shipped again", now=first + timedelta(days=1))

        assert order.shipped_date == first
        assert len(order.tracking) == 3

    def test_tracking_number_and_carrier_recorded(self):
        order = _make_order()
        order.add_tracking_update("shipped", "Shipped", tracking_number="1Z999", carrier="UPS")

        assert order.tracking_number == "1Z999"
        assert order.carrier == "UPS"

    def test_out_for_delivery_is_tracking_only(self):
        order = _make_order()
        order.add_tracking_update("shipped", "Shipped")
        order.add_tracking_update("out_for_delivery", "On the truck")

        assert order.status == "shipped"
        assert order.tracking_history[-1].status == "out_for_delivery"

    def test_unknown_status_is_rejected(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.add_tracking_update("teleported", "Gone")
        assert len(order.tracking) == 1

    def test_message_is_required(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.add_tracking_update("confirmed", "  ")


class TestCancel:
    @pytest.mark.parametrize("status", ["pending", "confirmed"])
    def test_allowed_from_early_states(self, status):
        order = _make_order()
        if status != "pending":
            order.add_tracking_update(status, "moved")

        order.cancel(reason="Changed my mind", cancelled_by="customer")

        assert order.status == "cancelled"
        assert order.cancelled_date is not None
        assert order.cancellation_reason == "Changed my mind"
        assert order.tracking_history[-1].message == "Order cancelled. Reason: Changed my mind"
        assert isinstance(order._events[-1], OrderCancelled)

    @pytest.mark.parametrize("status", ["processing", "shipped", "delivered"])
    def test_rejected_after_processing_starts(self, status):
        order = _make_order()
        order.add_tracking_update(status, "moved")

        with pytest.raises(InvalidTransition):
            order.cancel()

        assert order.status == status

    def test_cannot_cancel_twice(self):
        order = _make_order()
        order.cancel()
        with pytest.raises(InvalidTransition):
            order.cancel()

    def test_default_reason_message(self):
        order = _make_order()
        order.cancel()
        assert order.tracking_history[-1].message == "Order cancelled. Reason: No reason provided"


class TestReturns:
    def test_return_within_window(self):
        delivered_at = PLACED_AT + timedelta(days=3)
        order = _delivered_order(delivered_at)

        order.request_return("Wrong size", now=delivered_at + timedelta(days=30))

        assert order.status == "returned"
        assert order.return_requested is True
        assert order.return_reason == "Wrong size"
        assert isinstance(order._events[-1], ReturnRequested)

    def test_return_after_window_is_rejected(self):
        delivered_at = PLACED_AT + timedelta(days=3)
        order = _delivered_order(delivered_at)

        with pytest.raises(InvalidTransition) as exc:
            order.request_return("Too late", now=delivered_at + timedelta(days=31))

        assert "Return window" in str(exc.value)
        assert order.status == "delivered"

    def test_window_comes_from_policy(self):
        set_policy(PricingPolicy(return_window_days=7))
        delivered_at = PLACED_AT + timedelta(days=3)
        order = _delivered_order(delivered_at)

        assert order.can_return(delivered_at + timedelta(days=7)) is True
        assert order.can_return(delivered_at + timedelta(days=8)) is False

    def test_return_requires_delivery(self):
        order = _make_order()
        order.add_tracking_update("shipped", "Shipped")
        with pytest.raises(InvalidTransition):
            order.request_return("Not yet")

    def test_return_requires_reason(self):
        delivered_at = PLACED_AT + timedelta(days=3)
        order = _delivered_order(delivered_at)
        with pytest.raises(ValidationError):
            order.request_return("", now=delivered_at)


class TestEstimateDelivery:
    def test_standard_adds_seven_days(self):
        # Monday + 7 days is a Monday
        assert estimate_delivery("standard", PLACED_AT) == PLACED_AT + timedelta(days=7)

    def test_weekend_rolls_to_monday(self):
        thursday = datetime(2026, 3, 5, 9, 0, tzinfo=UTC)
        # Thursday + 3 days lands on Sunday
        assert estimate_delivery("express", thursday) == thursday + timedelta(days=4)
