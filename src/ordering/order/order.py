"""Order aggregate — the immutable record of a completed checkout.

An order is created once by checkout (see ``ordering.order.creation``) and
never deleted. Afterwards it changes in two ways only:

* the status tracker: ``add_tracking_update`` appends to the tracking history
  and moves the status; ``cancel`` and ``request_return`` check the allowed
  states before appending
* the refund processor: ``process_refund`` adjusts the refunded amount and
  payment status, then appends a ``returned`` entry

Status set:
    pending -> confirmed -> processing -> shipped -> delivered
    side states: cancelled, returned
    out_for_delivery is a tracking-only status: it is logged in the history
    but leaves the order's status where it was

Item snapshots and pricing are captured at checkout and never change, even
if the product's price changes or the product disappears.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.errors import InvalidTransition, RefundExceedsTotal
from ordering.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderStatusUpdated,
    PaymentRecorded,
    RefundProcessed,
    ReturnRequested,
)
from ordering.pricing.calculator import to_cents
from ordering.pricing.values import MONEY_EPSILON, OrderPricing
from ordering.settings import ShippingMethod, get_policy


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentMethod(Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    BANK_TRANSFER = "bank_transfer"


# Recorded in the history without changing the order's status
_TRACKING_ONLY_STATUSES = {OrderStatus.OUT_FOR_DELIVERY}

_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

# Status -> date field set the first time the order reaches it
_MILESTONE_DATES = {
    OrderStatus.SHIPPED: "shipped_date",
    OrderStatus.DELIVERED: "delivered_date",
    OrderStatus.CANCELLED: "cancelled_date",
}


def _aware(moment):
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class Address:
    """A shipping or billing address captured at checkout time."""

    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    company = String(max_length=100)
    address1 = String(required=True, max_length=255)
    address2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(max_length=100, default="United States")
    phone = String(max_length=30)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """Snapshot of a product line as it was sold."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    sku = String(required=True, max_length=50)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    image_url = String(max_length=500)

    @property
    def line_total(self):
        return to_cents(self.unit_price * self.quantity)


@ordering.entity(part_of="Order")
class TrackingEntry:
    """One append-only record in the order's status history."""

    sequence = Integer(required=True, min_value=1)
    status = String(required=True, choices=OrderStatus)
    message = String(required=True, max_length=500)
    timestamp = DateTime(required=True)
    location = String(max_length=255)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=30, unique=True)
    customer_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    tracking = HasMany(TrackingEntry)
    pricing = ValueObject(OrderPricing)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    shipping_method = String(choices=ShippingMethod, default=ShippingMethod.STANDARD.value)
    coupon_code = String(max_length=50)
    notes = Text()
    is_gift = Boolean(default=False)
    gift_message = String(max_length=500)

    # Shipping
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    estimated_delivery = DateTime()

    # Milestones (first write wins)
    order_date = DateTime()
    shipped_date = DateTime()
    delivered_date = DateTime()
    cancelled_date = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=50)

    # Returns and refunds
    return_requested = Boolean(default=False)
    return_reason = String(max_length=500)
    return_date = DateTime()
    refund_amount = Float(default=0.0, min_value=0.0)
    refund_date = DateTime()

    # Payment
    transaction_id = String(max_length=255)
    payment_method = String(choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_date = DateTime()

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def subtotal_matches_item_snapshot(self):
        if self.pricing is None or not self.items:
            return
        expected = sum(item.unit_price * item.quantity for item in self.items)
        if abs(expected - self.pricing.subtotal) > MONEY_EPSILON:
            raise ValidationError(
                {"subtotal": [f"Subtotal {self.pricing.subtotal} does not match item snapshot ({expected:.2f})"]}
            )

    @invariant.post
    def refund_within_order_total(self):
        if self.pricing is None:
            return
        refunded = self.refund_amount or 0.0
        if refunded < 0 or refunded - self.pricing.grand_total > MONEY_EPSILON:
            raise ValidationError({"refund_amount": ["Refunded amount must be between 0 and the order total"]})

    # -------------------------------------------------------------------
    # Factory (used only by checkout)
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        order_number,
        items,
        pricing,
        shipping_address,
        billing_address,
        shipping_method,
        estimated_delivery,
        coupon_code=None,
        notes=None,
        is_gift=False,
        gift_message=None,
        placed_at=None,
    ):
        """Create a pending order with its initial tracking entry.

        Args:
            items: List of snapshot dicts with product_id, name, sku,
                unit_price, quantity and image_url.
            pricing: The ``OrderPricing`` computed at checkout.
            shipping_address: Address dict.
            billing_address: Address dict.
        """
        now = placed_at or datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            order_number=order_number,
            status=OrderStatus.PENDING.value,
            items=[OrderItem(**item) for item in items],
            tracking=[
                TrackingEntry(
                    sequence=1,
                    status=OrderStatus.PENDING.value,
                    message="Order placed successfully",
                    timestamp=now,
                )
            ],
            pricing=pricing,
            shipping_address=Address(**shipping_address),
            billing_address=Address(**billing_address),
            shipping_method=shipping_method,
            coupon_code=coupon_code,
            notes=notes,
            is_gift=bool(is_gift),
            gift_message=gift_message,
            estimated_delivery=estimated_delivery,
            order_date=now,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                items=json.dumps(items),
                item_count=order.item_count,
                subtotal=pricing.subtotal,
                shipping_cost=pricing.shipping_cost,
                tax_total=pricing.tax_total,
                discount_total=pricing.discount_total,
                grand_total=pricing.grand_total,
                currency=pricing.currency,
                shipping_method=shipping_method,
                coupon_code=coupon_code,
                is_gift=bool(is_gift),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def item_count(self):
        return sum(item.quantity for item in self.items)

    @property
    def tracking_history(self):
        return sorted(self.tracking, key=lambda entry: entry.sequence)

    @property
    def refundable_amount(self):
        return to_cents(self.pricing.grand_total - (self.refund_amount or 0.0))

    def is_owned_by(self, customer_id):
        return str(self.customer_id) == str(customer_id)

    @property
    def can_cancel(self):
        return OrderStatus(self.status) in _CANCELLABLE_STATES

    def can_return(self, now=None):
        """Delivered orders can be returned up to the return window, inclusive."""
        if OrderStatus(self.status) != OrderStatus.DELIVERED or self.delivered_date is None:
            return False
        now = _aware(now) or datetime.now(UTC)
        elapsed = now - _aware(self.delivered_date)
        return elapsed.days <= get_policy().return_window_days

    # -------------------------------------------------------------------
    # Status tracker
    # -------------------------------------------------------------------
    def add_tracking_update(self, status, message, location=None, tracking_number=None, carrier=None, now=None):
        """Append a tracking entry and move to ``status``.

        The transition itself is not checked here; callers that need a rule
        (cancel, return) check it first.
        """
        try:
            new_status = OrderStatus(status)
        except ValueError as exc:
            raise ValidationError({"status": [f"Unknown order status '{status}'"]}) from exc
        if not message or not str(message).strip():
            raise ValidationError({"message": ["Status message is required"]})

        now = now or datetime.now(UTC)
        previous_status = self.status

        with atomic_change(self):
            self.add_tracking(
                TrackingEntry(
                    sequence=len(self.tracking) + 1,
                    status=new_status.value,
                    message=message,
                    timestamp=now,
                    location=location,
                )
            )
            if tracking_number:
                self.tracking_number = tracking_number
            if carrier:
                self.carrier = carrier

            if new_status not in _TRACKING_ONLY_STATUSES:
                self.status = new_status.value

            date_field = _MILESTONE_DATES.get(new_status)
            if date_field and getattr(self, date_field) is None:
                setattr(self, date_field, now)
            self.updated_at = now

        self.raise_(
            OrderStatusUpdated(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous_status,
                new_status=new_status.value,
                message=message,
                location=location,
                tracking_number=self.tracking_number,
                carrier=self.carrier,
                updated_at=now,
            )
        )

    def assert_can_cancel(self):
        if not self.can_cancel:
            raise InvalidTransition("cancelled", self.status)

    def cancel(self, reason=None, cancelled_by="customer", now=None):
        """Move to cancelled. Stock must already have been restored by the caller."""
        self.assert_can_cancel()
        now = now or datetime.now(UTC)

        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.add_tracking_update(
            OrderStatus.CANCELLED.value,
            f"Order cancelled. Reason: {reason or 'No reason provided'}",
            now=now,
        )

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                items=json.dumps([{"product_id": str(i.product_id), "quantity": i.quantity} for i in self.items]),
                reason=reason,
                cancelled_by=cancelled_by,
                cancelled_at=now,
            )
        )

    def request_return(self, reason, now=None):
        """Record a return request. Stock is not adjusted by a return."""
        now = now or datetime.now(UTC)
        if OrderStatus(self.status) != OrderStatus.DELIVERED:
            raise InvalidTransition("returned", self.status)
        if not self.can_return(now):
            window = get_policy().return_window_days
            raise InvalidTransition(
                "returned",
                self.status,
                message=f"Return window of {window} days after delivery has passed",
            )
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["Return reason is required"]})

        self.return_requested = True
        self.return_reason = reason
        self.return_date = now
        self.add_tracking_update(OrderStatus.RETURNED.value, f"Return requested. Reason: {reason}", now=now)

        self.raise_(
            ReturnRequested(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                reason=reason,
                requested_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment and refunds
    # -------------------------------------------------------------------
    def assert_can_pay(self):
        if OrderStatus(self.status) == OrderStatus.CANCELLED:
            raise InvalidTransition("paid", self.status)
        if self.payment_status not in (PaymentStatus.PENDING.value, PaymentStatus.FAILED.value):
            raise InvalidTransition("paid", self.status, message=f"Order payment is already {self.payment_status}")

    def record_payment(self, transaction_id, payment_method, succeeded, failure_reason=None, now=None):
        self.assert_can_pay()

        now = now or datetime.now(UTC)
        status = PaymentStatus.COMPLETED if succeeded else PaymentStatus.FAILED

        self.transaction_id = transaction_id
        self.payment_method = payment_method
        self.payment_status = status.value
        if succeeded:
            self.payment_date = now
        self.updated_at = now

        self.raise_(
            PaymentRecorded(
                order_id=str(self.id),
                order_number=self.order_number,
                transaction_id=transaction_id,
                payment_method=payment_method,
                payment_status=status.value,
                amount=self.pricing.grand_total,
                failure_reason=failure_reason,
                recorded_at=now,
            )
        )

    def process_refund(self, amount, reason="", now=None):
        """Add ``amount`` to the refunded total and append a ``returned`` entry.

        Raises RefundExceedsTotal, leaving the order untouched, when the
        amount is more than what is left to refund, and InvalidTransition when
        no payment was captured.
        """
        if self.payment_status not in (PaymentStatus.COMPLETED.value, PaymentStatus.PARTIALLY_REFUNDED.value):
            raise InvalidTransition(
                "refunded", self.status, message=f"Order cannot be refunded while payment is {self.payment_status}"
            )
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be greater than 0"]})

        refundable = self.refundable_amount
        if to_cents(amount) > refundable:
            raise RefundExceedsTotal(requested=amount, refundable=refundable)

        now = now or datetime.now(UTC)
        with atomic_change(self):
            self.refund_amount = to_cents((self.refund_amount or 0.0) + amount)
            self.refund_date = now
            if self.refund_amount >= self.pricing.grand_total:
                self.payment_status = PaymentStatus.REFUNDED.value
            else:
                self.payment_status = PaymentStatus.PARTIALLY_REFUNDED.value

        self.add_tracking_update(
            OrderStatus.RETURNED.value,
            f"Refund processed: ${amount:.2f}. Reason: {reason}",
            now=now,
        )

        self.raise_(
            RefundProcessed(
                order_id=str(self.id),
                order_number=self.order_number,
                transaction_id=self.transaction_id,
                amount=amount,
                total_refunded=self.refund_amount,
                payment_status=self.payment_status,
                reason=reason,
                refunded_at=now,
            )
        )


def estimate_delivery(shipping_method, start=None):
    """Add the method's delivery days, then roll forward past a weekend."""
    start = start or datetime.now(UTC)
    days = get_policy().delivery_days.get(ShippingMethod(shipping_method).value, 7)
    estimate = start + timedelta(days=days)
    while estimate.weekday() >= 5:
        estimate += timedelta(days=1)
    return estimate
