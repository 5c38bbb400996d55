"""Cart management — clearing and merging a client-held cart at login."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.items import load_cart
from ordering.domain import ordering
from ordering.inventory.product import Product
from ordering.settings import get_policy


@ordering.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = Identifier(required=True)
    expected_revision = Integer()


@ordering.command(part_of="ShoppingCart")
class MergeLocalCart:
    """Fold the items of an anonymous, client-held cart into the customer's cart."""

    customer_id = Identifier(required=True)
    local_items = Text(required=True)  # JSON: list of {product_id, quantity}
    expected_revision = Integer()


def parse_local_items(raw):
    try:
        items = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError as exc:
        raise ValidationError({"local_items": ["Malformed JSON"]}) from exc
    if not isinstance(items, list):
        raise ValidationError({"local_items": ["Local cart items must be a list"]})

    parsed = []
    for item in items:
        if not isinstance(item, dict) or not item.get("product_id"):
            raise ValidationError({"local_items": ["Every local item needs a product_id"]})
        parsed.append({"product_id": str(item["product_id"]), "quantity": item.get("quantity")})
    return parsed


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(ClearCart)
    def clear_cart(self, command):
        cart = load_cart(command.customer_id)
        cart.assert_revision(command.expected_revision)

        cart.clear()
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.revision

    @handle(MergeLocalCart)
    def merge_local_cart(self, command):
        local_items = parse_local_items(command.local_items)

        cart = load_cart(command.customer_id)
        cart.assert_revision(command.expected_revision)

        # Unknown products are rejected before anything is merged
        product_repo = current_domain.repository_for(Product)
        for item in local_items:
            product_repo.get(item["product_id"])

        cart.merge(local_items, max_quantity=get_policy().max_line_quantity)
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.revision
