"""Domain events for the Order aggregate.

Events are immutable facts recorded alongside the order's own append-only
tracking history. They are dispatched through the domain's broker after the
Unit of Work that raised them commits.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """An order was created from checkout, its stock withdrawn and its number assigned."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item snapshots
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    shipping_cost = Float()
    tax_total = Float()
    discount_total = Float()
    grand_total = Float(required=True)
    currency = String(default="USD")
    shipping_method = String(required=True)
    coupon_code = String()
    is_gift = Boolean(default=False)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusUpdated:
    """A tracking entry was appended and the order moved to its status."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    message = String(required=True)
    location = String()
    tracking_number = String()
    carrier = String()
    updated_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled and every line's stock put back."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity} restored
    reason = String()
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ReturnRequested:
    """The customer asked to return a delivered order within the return window."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    reason = String(required=True)
    requested_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentRecorded:
    """A charge against the order was attempted and its outcome stored."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    transaction_id = String(required=True)
    payment_method = String(required=True)
    payment_status = String(required=True)
    amount = Float(required=True)
    failure_reason = String()
    recorded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class RefundProcessed:
    """Part or all of the order total was refunded."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    transaction_id = String()
    amount = Float(required=True)
    total_refunded = Float(required=True)
    payment_status = String(required=True)
    reason = String()
    refunded_at = DateTime(required=True)
