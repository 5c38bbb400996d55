"""Order read side — listing, detail and statistics.

These functions read directly through the Order repository and apply the
same ownership and role rules as the write side: customers see their own
orders, staff see all of them, and statistics are for admins only.
"""

from collections import Counter

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.access import STAFF_ROLES, Role, require_owner_or_role, require_role
from ordering.order.order import Order, OrderStatus
from ordering.pricing.calculator import to_cents

MAX_PAGE_SIZE = 100


def _address_dict(address):
    return address.to_dict() if address is not None else None


def serialize_order(order):
    pricing = order.pricing
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "customer_id": str(order.customer_id),
        "status": order.status,
        "items": [
            {
                "product_id": str(item.product_id),
                "name": item.name,
                "sku": item.sku,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "image_url": item.image_url,
                "line_total": item.line_total,
            }
            for item in order.items
        ],
        "item_count": order.item_count,
        "subtotal": pricing.subtotal,
        "shipping": pricing.shipping_cost,
        "tax": pricing.tax_total,
        "discount": pricing.discount_total,
        "total": pricing.grand_total,
        "currency": pricing.currency,
        "shipping_address": _address_dict(order.shipping_address),
        "billing_address": _address_dict(order.billing_address),
        "shipping_method": order.shipping_method,
        "coupon_code": order.coupon_code,
        "notes": order.notes,
        "is_gift": order.is_gift,
        "gift_message": order.gift_message,
        "tracking_number": order.tracking_number,
        "carrier": order.carrier,
        "estimated_delivery": order.estimated_delivery,
        "tracking_history": [
            {
                "status": entry.status,
                "message": entry.message,
                "timestamp": entry.timestamp,
                "location": entry.location,
            }
            for entry in order.tracking_history
        ],
        "order_date": order.order_date,
        "shipped_date": order.shipped_date,
        "delivered_date": order.delivered_date,
        "cancelled_date": order.cancelled_date,
        "cancellation_reason": order.cancellation_reason,
        "return_requested": order.return_requested,
        "return_reason": order.return_reason,
        "return_date": order.return_date,
        "refund_amount": order.refund_amount or 0.0,
        "refund_date": order.refund_date,
        "transaction_id": order.transaction_id,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "can_cancel": order.can_cancel,
        "can_return": order.can_return(),
    }


def list_orders(actor_id, actor_role, status=None, page=1, limit=10):
    """Page through the caller's orders, newest first. Staff see every order."""
    if page < 1:
        raise ValidationError({"page": ["Page must be at least 1"]})
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError({"limit": [f"Limit must be between 1 and {MAX_PAGE_SIZE}"]})
    if status is not None:
        try:
            status = OrderStatus(status).value
        except ValueError as exc:
            raise ValidationError({"status": [f"Unknown order status '{status}'"]}) from exc

    customer_id = None if actor_role in STAFF_ROLES else actor_id
    orders, total = current_domain.repository_for(Order).page(
        customer_id=customer_id, status=status, page=page, limit=limit
    )
    pages = (total + limit - 1) // limit
    return {
        "orders": [serialize_order(order) for order in orders],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": pages,
            "has_next": page < pages,
            "has_prev": page > 1,
        },
    }


def get_order(order_id, actor_id, actor_role):
    order = current_domain.repository_for(Order).get(order_id)
    require_owner_or_role(order, actor_id, actor_role, *STAFF_ROLES)
    return serialize_order(order)


def order_stats(actor_role):
    """Totals over every order plus a count per status."""
    require_role(actor_role, Role.ADMIN.value)

    total_orders = 0
    revenue = 0.0
    total_items = 0
    by_status = Counter()
    for order in current_domain.repository_for(Order).all_orders():
        total_orders += 1
        revenue += order.pricing.grand_total
        total_items += order.item_count
        by_status[order.status] += 1

    return {
        "total_orders": total_orders,
        "total_revenue": to_cents(revenue),
        "average_order_value": to_cents(revenue / total_orders) if total_orders else 0.0,
        "total_items": total_items,
        "by_status": dict(by_status),
    }
