"""Domain events for the Product stock ledger."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Product")
class ProductRegistered:
    """A sellable product was registered with an opening stock count."""

    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    name = String(required=True)
    price = Float(required=True)
    initial_stock = Integer(required=True)
    registered_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockWithdrawn:
    """Units left the sellable stock (checkout or an administrative correction)."""

    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reference = String()  # Order number or correction note
    withdrawn_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockRestored:
    """Units previously withdrawn for an order went back on the shelf (order cancelled)."""

    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    reference = String()
    restored_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockReceived:
    """New units were received from a supplier."""

    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    received_at = DateTime(required=True)


@ordering.event(part_of="Product")
class LowStockDetected:
    """Stock fell to or below the product's low-stock threshold."""

    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    current_stock = Integer(required=True)
    threshold = Integer(required=True)
    detected_at = DateTime(required=True)
