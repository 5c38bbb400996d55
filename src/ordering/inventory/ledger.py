"""Inventory ledger — stock movements that span several products.

Checkout reserves stock in two phases:

    reservation = reserve_stock(lines)   # load + conditional withdraw, in memory
    ...                                  # price, number and build the order
    reservation.commit()                 # add every product to the repository

``reserve_stock`` raises ``InsufficientStock`` on the first line that cannot
be covered; since nothing has been added to a repository at that point, no
product count changes. ``commit`` runs inside the caller's Unit of Work, so
the products and the order are written together.

Cancellation uses ``restore_stock`` to put back the full quantity of every
line. There is no partial restock path.
"""

from dataclasses import dataclass, field

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.inventory.product import Product

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockLine:
    product_id: str
    quantity: int


@dataclass
class StockReservation:
    """Products whose stock has been withdrawn in memory but not yet written."""

    products: dict = field(default_factory=dict)
    lines: list = field(default_factory=list)
    committed: bool = False

    def product(self, product_id):
        return self.products[str(product_id)]

    def commit(self):
        if self.committed:
            return
        repo = current_domain.repository_for(Product)
        for product in self.products.values():
            repo.add(product)
        self.committed = True

        for line in self.lines:
            logger.info("stock_withdrawn", product_id=line.product_id, quantity=line.quantity)


def reserve_stock(lines, reference=None):
    """Withdraw every line from its product, all or nothing.

    Lines naming the same product are checked against the running count, so
    two lines of 3 against a stock of 5 fail just like one line of 6.
    """
    repo = current_domain.repository_for(Product)
    reservation = StockReservation()

    for line in lines:
        product_id = str(line.product_id)
        product = reservation.products.get(product_id)
        if product is None:
            product = repo.get(product_id)
            if not product.is_active:
                raise ValidationError({"product_id": [f"Product {product.sku} is not available for sale"]})
            reservation.products[product_id] = product

        product.withdraw(line.quantity, reference=reference)
        reservation.lines.append(StockLine(product_id=product_id, quantity=line.quantity))

    return reservation


def restore_stock(lines, reference=None):
    """Put the full quantity of every line back into stock."""
    repo = current_domain.repository_for(Product)
    restored = {}

    for line in lines:
        product_id = str(line.product_id)
        product = restored.get(product_id) or repo.get(product_id)
        product.restore(line.quantity, reference=reference)
        restored[product_id] = product

    for product in restored.values():
        repo.add(product)

    for line in lines:
        logger.info("stock_restored", product_id=str(line.product_id), quantity=line.quantity, reference=reference)

    return list(restored.values())
