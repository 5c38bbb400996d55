"""Checkout — turns a cart (or an explicit item list) into a placed order.

PlaceOrder runs in a single Unit of Work:

1. validate the request (items, quantities, shipping method, addresses)
2. reserve stock for every line; any shortfall raises InsufficientStock
   before anything is written
3. snapshot each product and price the order
4. assign an order number, drawing a new random suffix on collision,
   including one the unique field rejects on write
5. create the order with its initial ``pending`` tracking entry and an
   estimated delivery date
6. write the order, the reserved products, the cleared cart and the
   customer's updated statistics together
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain
from protean.utils.reflection import declared_fields

from ordering.cart.cart import ShoppingCart
from ordering.customer.account import CustomerAccount, account_for
from ordering.domain import ordering
from ordering.errors import DuplicateOrderNumber, PersistenceError
from ordering.inventory.ledger import StockLine, reserve_stock
from ordering.order.order import Address, Order, estimate_delivery
from ordering.order.repository import generate_order_number
from ordering.pricing.calculator import calculate_pricing
from ordering.pricing.coupons import find_coupon, normalize_code
from ordering.settings import ShippingMethod, get_policy

logger = structlog.get_logger(__name__)

_ADDRESS_FIELDS = tuple(declared_fields(Address).keys())


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text()  # JSON: list of {product_id, quantity}; omitted -> the customer's cart
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict; defaults to the shipping address
    shipping_method = String(max_length=20, default=ShippingMethod.STANDARD.value)
    coupon_code = String(max_length=50)
    notes = String(max_length=1000)
    is_gift = Boolean(default=False)
    gift_message = String(max_length=500)


def _load_json(raw, field_name):
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError({field_name: ["Malformed JSON"]}) from exc


def _parse_address(raw, field_name):
    data = _load_json(raw, field_name)
    if not isinstance(data, dict):
        raise ValidationError({field_name: ["Address must be an object"]})
    address = {key: value for key, value in data.items() if key in _ADDRESS_FIELDS and value is not None}
    try:
        Address(**address)
    except ValidationError as exc:
        raise ValidationError({field_name: [f"{key}: {', '.join(msgs)}" for key, msgs in exc.messages.items()]}) from exc
    return address


def _parse_lines(raw_items, customer_id, max_quantity):
    if raw_items:
        items = _load_json(raw_items, "items")
    else:
        try:
            cart = current_domain.repository_for(ShoppingCart).get(customer_id)
        except ObjectNotFoundError:
            cart = None
        items = [{"product_id": str(i.product_id), "quantity": i.quantity} for i in cart.items] if cart else []

    if not isinstance(items, list) or not items:
        raise ValidationError({"items": ["At least one item is required"]})

    lines = []
    for item in items:
        if not isinstance(item, dict) or not item.get("product_id"):
            raise ValidationError({"items": ["Valid product ID is required"]})
        quantity = item.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or not 1 <= quantity <= max_quantity:
            raise ValidationError({"items": [f"Quantity must be between 1 and {max_quantity}"]})
        lines.append(StockLine(product_id=str(item["product_id"]), quantity=quantity))
    return lines


def add_order(repo, order):
    """Write a new order, reporting a taken order number as DuplicateOrderNumber."""
    try:
        repo.add(order)
    except DuplicateOrderNumber:
        raise
    except ValidationError as exc:
        if "order_number" in (exc.messages or {}):
            raise DuplicateOrderNumber(order.order_number) from exc
        raise


def place_with_order_number(build_order):
    """Build and write an order under a fresh number, redrawing on collision.

    ``build_order`` receives the candidate number and returns an unsaved
    Order. A number taken after the claim is rejected by the unique field on
    write and counts as one more collision.
    """
    policy = get_policy()
    repo = current_domain.repository_for(Order)

    for attempt in range(1, policy.order_number_attempts + 1):
        candidate = generate_order_number(policy.order_number_prefix)
        try:
            repo.claim_order_number(candidate)
            order = build_order(candidate)
            add_order(repo, order)
            return order
        except DuplicateOrderNumber:
            logger.warning("order_number_collision", order_number=candidate, attempt=attempt)

    raise PersistenceError(f"Could not assign a unique order number after {policy.order_number_attempts} attempts")


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        policy = get_policy()

        # 1. Validate
        try:
            shipping_method = ShippingMethod(command.shipping_method or ShippingMethod.STANDARD.value).value
        except ValueError as exc:
            raise ValidationError({"shipping_method": ["Invalid shipping method"]}) from exc
        lines = _parse_lines(command.items, command.customer_id, policy.max_line_quantity)
        shipping_address = _parse_address(command.shipping_address, "shipping_address")
        billing_address = (
            _parse_address(command.billing_address, "billing_address")
            if command.billing_address
            else dict(shipping_address)
        )

        # 2. Reserve stock (in memory until commit)
        reservation = reserve_stock(lines, reference=f"checkout:{command.customer_id}")

        # 3. Snapshot and price
        snapshot = []
        for line in lines:
            product = reservation.product(line.product_id)
            snapshot.append(
                {
                    "product_id": str(product.id),
                    "name": product.name,
                    "sku": product.sku,
                    "unit_price": product.price,
                    "quantity": line.quantity,
                    "image_url": product.image_url,
                }
            )

        coupon = None
        if command.coupon_code:
            coupon = find_coupon(command.coupon_code)
            if coupon is None:
                logger.info("coupon_unknown", coupon_code=normalize_code(command.coupon_code))
        quote = calculate_pricing(
            [(item["unit_price"], item["quantity"]) for item in snapshot],
            shipping_method=shipping_method,
            coupon=coupon,
            policy=policy,
        )

        # 4-5. Order number, initial tracking entry and delivery estimate
        def build_order(order_number):
            return Order.place(
                customer_id=command.customer_id,
                order_number=order_number,
                items=snapshot,
                pricing=quote.pricing,
                shipping_address=shipping_address,
                billing_address=billing_address,
                shipping_method=shipping_method,
                estimated_delivery=estimate_delivery(shipping_method),
                coupon_code=quote.coupon.code if quote.coupon.applied else None,
                notes=command.notes,
                is_gift=command.is_gift,
                gift_message=command.gift_message,
            )

        # 6. Write everything in this Unit of Work
        order = place_with_order_number(build_order)
        reservation.commit()
        self._clear_cart(command.customer_id)

        account = account_for(command.customer_id)
        account.record_order(order.pricing.grand_total, placed_at=order.order_date)
        current_domain.repository_for(CustomerAccount).add(account)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(command.customer_id),
            total=order.pricing.grand_total,
            item_count=len(snapshot),
        )
        return str(order.id)

    @staticmethod
    def _clear_cart(customer_id):
        repo = current_domain.repository_for(ShoppingCart)
        try:
            cart = repo.get(customer_id)
        except ObjectNotFoundError:
            return
        if not cart.is_empty:
            cart.clear()
            repo.add(cart)
