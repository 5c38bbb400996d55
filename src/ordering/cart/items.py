"""Cart item management — commands and handler.

Every command names the customer whose cart it changes. The cart is created
on first use. ``expected_revision`` is optional; when given, the write is
rejected if the cart changed in the meantime.

Adding or raising a quantity checks the product's current stock to give
early feedback. Nothing is reserved: checkout checks stock again.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.domain import ordering
from ordering.errors import InsufficientStock
from ordering.inventory.product import Product
from ordering.settings import get_policy


def load_cart(customer_id):
    """Return the customer's cart, creating an empty one if there is none yet."""
    repo = current_domain.repository_for(ShoppingCart)
    try:
        return repo.get(customer_id)
    except ObjectNotFoundError:
        return ShoppingCart.create(customer_id=customer_id)


def check_available(product_id, quantity):
    """Fail with NotFound or InsufficientStock if the product cannot cover ``quantity``."""
    product = current_domain.repository_for(Product).get(product_id)
    if not product.can_supply(quantity):
        raise InsufficientStock(product.id, product.sku, requested=quantity, available=product.stock)
    return product


@ordering.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    expected_revision = Integer()


@ordering.command(part_of="ShoppingCart")
class UpdateCartItem:
    """Set a line's quantity. A quantity of 0 removes the line."""

    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=0)
    expected_revision = Integer()


@ordering.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    expected_revision = Integer()


@ordering.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        cart = load_cart(command.customer_id)
        cart.assert_revision(command.expected_revision)

        check_available(command.product_id, command.quantity)
        cart.add_item(
            product_id=command.product_id,
            quantity=command.quantity,
            max_quantity=get_policy().max_line_quantity,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.revision

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        cart = load_cart(command.customer_id)
        cart.assert_revision(command.expected_revision)

        if command.quantity > 0:
            check_available(command.product_id, command.quantity)
        cart.update_item(
            product_id=command.product_id,
            quantity=command.quantity,
            max_quantity=get_policy().max_line_quantity,
        )
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.revision

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = load_cart(command.customer_id)
        cart.assert_revision(command.expected_revision)

        cart.remove_item(product_id=command.product_id)
        current_domain.repository_for(ShoppingCart).add(cart)
        return cart.revision
