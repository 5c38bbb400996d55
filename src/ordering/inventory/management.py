"""Product stock management — commands and handler.

Registering products and receiving stock belong to the catalogue; they are
exposed here so checkout has something to sell and tests can seed products.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.inventory.product import Product


@ordering.command(part_of="Product")
class RegisterProduct:
    name = String(required=True, max_length=200)
    sku = String(required=True, max_length=50)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image_url = String(max_length=500)
    low_stock_threshold = Integer(default=5, min_value=0)


@ordering.command(part_of="Product")
class ReceiveStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="Product")
class CorrectStock:
    """Remove damaged or miscounted units. The count never goes below zero."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    note = String(max_length=255)


@ordering.command_handler(part_of=Product)
class ProductStockHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        repo = current_domain.repository_for(Product)
        if repo.find_by_sku(command.sku) is not None:
            raise ValidationError({"sku": [f"Product with SKU {command.sku} already exists"]})

        product = Product.register(
            name=command.name,
            sku=command.sku,
            price=command.price,
            stock=command.stock or 0,
            image_url=command.image_url,
            low_stock_threshold=command.low_stock_threshold if command.low_stock_threshold is not None else 5,
        )
        repo.add(product)
        return str(product.id)

    @handle(ReceiveStock)
    def receive_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.receive(command.quantity)
        repo.add(product)

    @handle(CorrectStock)
    def correct_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.decrement(command.quantity, reference=command.note or "stock correction")
        repo.add(product)
