"""Business-rule exceptions raised by the ordering domain.

Rule violations extend Protean's exception classes and carry a ``messages``
dict (field -> list of reasons), so API handlers render them the same way
Protean renders its own validation failures.
"""

from protean.exceptions import InvalidOperationError, ValidationError


class InsufficientStock(ValidationError):
    """A product cannot cover the requested quantity."""

    def __init__(self, product_id, sku, requested, available):
        self.product_id = str(product_id)
        self.sku = sku
        self.requested = requested
        self.available = available
        message = f"Insufficient stock for product {sku}: requested {requested}, available {available}"
        super().__init__({"stock": [message]})
        self.messages = {"stock": [message]}


class RefundExceedsTotal(ValidationError):
    """The refund would push the refunded amount past the order total."""

    def __init__(self, requested, refundable):
        self.requested = requested
        self.refundable = refundable
        message = f"Refund amount {requested:.2f} exceeds the remaining refundable amount {refundable:.2f}"
        super().__init__({"amount": [message]})
        self.messages = {"amount": [message]}


class DuplicateOrderNumber(ValidationError):
    """An order number is already taken. Handled by retrying with a fresh suffix."""

    def __init__(self, order_number):
        self.order_number = order_number
        message = f"Order number {order_number} is already in use"
        super().__init__({"order_number": [message]})
        self.messages = {"order_number": [message]}


class Forbidden(InvalidOperationError):
    """The caller does not own the resource or lacks the required role."""

    def __init__(self, message="Access denied"):
        super().__init__(message)
        self.messages = {"_entity": [message]}


class InvalidTransition(InvalidOperationError):
    """An order operation is not allowed from the order's current status."""

    def __init__(self, operation, status, message=None):
        self.operation = operation
        self.status = status
        message = message or f"Order cannot be {operation} while {status}"
        super().__init__(message)
        self.messages = {"status": [message]}


class PersistenceError(Exception):
    """Unexpected storage failure. Surfaced to clients as a generic server error."""


class StaleCart(InvalidOperationError):
    """A cart write was based on a revision that is no longer current."""

    def __init__(self, expected_revision, current_revision):
        self.expected_revision = expected_revision
        self.current_revision = current_revision
        message = f"Cart changed since revision {expected_revision} (now at revision {current_revision})"
        super().__init__(message)
        self.messages = {"revision": [message]}
