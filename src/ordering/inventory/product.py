"""Product aggregate — the stock counter of a sellable product.

The catalogue owns everything else about a product; this aggregate carries
only what checkout reads (name, SKU, price, primary image) and the stock
count that checkout and cancellation write.

Stock operations:
    withdraw(qty)   conditional: fails with InsufficientStock if stock < qty
    decrement(qty)  clamping: stock = max(0, stock - qty), for corrections
    restore(qty)    compensates a withdrawal when an order is cancelled
    receive(qty)    supplier deliveries
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from ordering.domain import ordering
from ordering.errors import InsufficientStock
from ordering.inventory.events import (
    LowStockDetected,
    ProductRegistered,
    StockReceived,
    StockRestored,
    StockWithdrawn,
)


class StockStatus(Enum):
    IN_STOCK = "in-stock"
    LOW_STOCK = "low-stock"
    OUT_OF_STOCK = "out-of-stock"


@ordering.aggregate
class Product:
    name = String(required=True, max_length=200)
    sku = String(required=True, max_length=50, unique=True)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    image_url = String(max_length=500)
    low_stock_threshold = Integer(default=5, min_value=0)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_cannot_be_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, name, sku, price, stock=0, image_url=None, low_stock_threshold=5):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            sku=sku,
            price=price,
            stock=stock,
            image_url=image_url,
            low_stock_threshold=low_stock_threshold,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                sku=sku,
                name=name,
                price=price,
                initial_stock=stock,
                registered_at=now,
            )
        )
        return product

    @property
    def stock_status(self):
        if self.stock == 0:
            return StockStatus.OUT_OF_STOCK.value
        if self.stock <= self.low_stock_threshold:
            return StockStatus.LOW_STOCK.value
        return StockStatus.IN_STOCK.value

    def can_supply(self, quantity):
        return self.stock >= quantity

    # -------------------------------------------------------------------
    # Stock movements
    # -------------------------------------------------------------------
    def withdraw(self, quantity, reference=None):
        """Take ``quantity`` units out of stock, or fail without touching the count."""
        self._assert_positive(quantity)
        if not self.can_supply(quantity):
            raise InsufficientStock(self.id, self.sku, requested=quantity, available=self.stock)
        self._take(quantity, reference)

    def decrement(self, quantity, reference=None):
        """Remove up to ``quantity`` units; the count bottoms out at zero."""
        self._assert_positive(quantity)
        self._take(min(quantity, self.stock), reference)

    def restore(self, quantity, reference=None):
        self._assert_positive(quantity)
        previous = self.stock
        now = datetime.now(UTC)
        self.stock = previous + quantity
        self.updated_at = now

        self.raise_(
            StockRestored(
                product_id=str(self.id),
                sku=self.sku,
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                reference=reference,
                restored_at=now,
            )
        )

    def receive(self, quantity):
        self._assert_positive(quantity)
        previous = self.stock
        now = datetime.now(UTC)
        self.stock = previous + quantity
        self.updated_at = now

        self.raise_(
            StockReceived(
                product_id=str(self.id),
                sku=self.sku,
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                received_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _take(self, quantity, reference):
        previous = self.stock
        now = datetime.now(UTC)
        self.stock = previous - quantity
        self.updated_at = now

        self.raise_(
            StockWithdrawn(
                product_id=str(self.id),
                sku=self.sku,
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                reference=reference,
                withdrawn_at=now,
            )
        )
        self._check_low_stock()

    def _check_low_stock(self):
        if self.stock <= self.low_stock_threshold:
            self.raise_(
                LowStockDetected(
                    product_id=str(self.id),
                    sku=self.sku,
                    current_stock=self.stock,
                    threshold=self.low_stock_threshold,
                    detected_at=datetime.now(UTC),
                )
            )

    @staticmethod
    def _assert_positive(quantity):
        if not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be a positive integer"]})
