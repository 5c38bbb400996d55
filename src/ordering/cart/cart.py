"""Shopping Cart aggregate (CQRS) — one server-held cart per customer.

The cart is keyed by the customer id, so every cart operation names the
customer explicitly. It holds at most one line per product: adding a product
that is already present increases that line's quantity.

Quantities in a request must be between 1 and the per-line cap (inclusive);
out-of-range requests are rejected. When an add or a merge sums onto an
existing line, the resulting quantity is capped.

Every change bumps ``revision``. Writers that read the cart earlier can pass
the revision they saw; a mismatch raises StaleCart instead of overwriting a
newer cart.

Stock is not reserved here. Checkout validates stock again.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from ordering.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    CartsMerged,
)
from ordering.domain import ordering
from ordering.errors import StaleCart


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@ordering.aggregate
class ShoppingCart:
    customer_id = Identifier(identifier=True, required=True)
    items = HasMany(CartItem)
    revision = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def one_line_per_product(self):
        product_ids = [str(item.product_id) for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValidationError({"items": ["A product can appear only once in the cart"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            revision=0,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def line_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def quantity_of(self, product_id):
        line = self.line_for(product_id)
        return line.quantity if line else 0

    @property
    def item_count(self):
        return sum(item.quantity for item in self.items)

    @property
    def is_empty(self):
        return not self.items

    def assert_revision(self, expected_revision):
        if expected_revision is not None and expected_revision != self.revision:
            raise StaleCart(expected_revision, self.revision)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, max_quantity):
        """Add a product, or increase its quantity (capped) if already present."""
        self._assert_quantity_in_range(quantity, max_quantity)

        now = datetime.now(UTC)
        existing = self.line_for(product_id)
        if existing:
            existing.quantity = min(existing.quantity + quantity, max_quantity)
            new_quantity = existing.quantity
        else:
            self.add_items(CartItem(product_id=product_id, quantity=quantity, added_at=now))
            new_quantity = quantity

        self._touch(now)
        self.raise_(
            CartItemAdded(
                customer_id=str(self.customer_id),
                product_id=str(product_id),
                quantity_added=quantity,
                new_quantity=new_quantity,
                revision=self.revision,
            )
        )

    def update_item(self, product_id, quantity, max_quantity):
        """Set a line's quantity directly. Zero removes the line."""
        if quantity == 0:
            self.remove_item(product_id)
            return

        self._assert_quantity_in_range(quantity, max_quantity)

        now = datetime.now(UTC)
        existing = self.line_for(product_id)
        previous_quantity = existing.quantity if existing else 0
        if existing:
            existing.quantity = quantity
        else:
            self.add_items(CartItem(product_id=product_id, quantity=quantity, added_at=now))

        self._touch(now)
        self.raise_(
            CartQuantityUpdated(
                customer_id=str(self.customer_id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
                revision=self.revision,
            )
        )

    def remove_item(self, product_id):
        """Remove a product line. Removing an absent product changes nothing."""
        existing = self.line_for(product_id)
        if existing is None:
            return

        self.remove_items(existing)
        self._touch(datetime.now(UTC))
        self.raise_(
            CartItemRemoved(
                customer_id=str(self.customer_id),
                product_id=str(product_id),
                revision=self.revision,
            )
        )

    def clear(self):
        removed = len(self.items)
        for item in list(self.items):
            self.remove_items(item)

        now = datetime.now(UTC)
        self._touch(now)
        self.raise_(
            CartCleared(
                customer_id=str(self.customer_id),
                items_removed=removed,
                revision=self.revision,
                cleared_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Merge (anonymous → authenticated)
    # -------------------------------------------------------------------
    def merge(self, local_items, max_quantity):
        """Fold client-held lines into this cart.

        Args:
            local_items: List of dicts with product_id and quantity.
            max_quantity: Per-line cap applied to summed quantities.

        Quantities of products already in the cart are summed (capped);
        other products are inserted. Every local line is validated before
        any line is applied.
        """
        for local in local_items:
            self._assert_quantity_in_range(local.get("quantity"), max_quantity)

        now = datetime.now(UTC)
        for local in local_items:
            existing = self.line_for(local["product_id"])
            if existing:
                existing.quantity = min(existing.quantity + local["quantity"], max_quantity)
            else:
                self.add_items(
                    CartItem(
                        product_id=local["product_id"],
                        quantity=local["quantity"],
                        added_at=now,
                    )
                )

        self._touch(now)
        self.raise_(
            CartsMerged(
                customer_id=str(self.customer_id),
                items_merged_count=len(local_items),
                revision=self.revision,
                merged_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _touch(self, now):
        self.revision = (self.revision or 0) + 1
        self.updated_at = now

    @staticmethod
    def _assert_quantity_in_range(quantity, max_quantity):
        if not isinstance(quantity, int) or isinstance(quantity, bool) or not 1 <= quantity <= max_quantity:
            raise ValidationError({"quantity": [f"Quantity must be between 1 and {max_quantity}"]})
