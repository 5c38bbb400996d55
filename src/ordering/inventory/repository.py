"""Repository for the Product aggregate."""

from ordering.domain import ordering
from ordering.inventory.product import Product


@ordering.repository(part_of=Product)
class ProductRepository:
    def find_by_sku(self, sku):
        """Return the product registered under ``sku``, or None."""
        return self._dao.query.filter(sku=sku).all().first
