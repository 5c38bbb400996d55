"""Domain events for the ShoppingCart aggregate."""

from protean.fields import DateTime, Identifier, Integer

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the cart, or its quantity was increased."""

    __version__ = 1

    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity_added = Integer(required=True)
    new_quantity = Integer(required=True)
    revision = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    """The quantity of a cart line was set directly."""

    __version__ = 1

    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    revision = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    """A product line was removed from the cart."""

    __version__ = 1

    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    revision = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCleared:
    """Every line was removed, by the customer or by a completed checkout."""

    __version__ = 1

    customer_id = Identifier(required=True)
    items_removed = Integer(required=True)
    revision = Integer(required=True)
    cleared_at = DateTime(required=True)


@ordering.event(part_of="ShoppingCart")
class CartsMerged:
    """A client-held (anonymous) cart was folded into the customer's server cart."""

    __version__ = 1

    customer_id = Identifier(required=True)
    items_merged_count = Integer(required=True)
    revision = Integer(required=True)
    merged_at = DateTime(required=True)
