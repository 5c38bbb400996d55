"""Repository for the Order aggregate, with order-number and lookup queries."""

import secrets
import string
from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError

from ordering.domain import ordering
from ordering.errors import DuplicateOrderNumber
from ordering.order.order import Order

_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase
_SUFFIX_LENGTH = 4
_TIME_DIGITS = 8
_BATCH_SIZE = 100


def generate_order_number(prefix, now=None):
    """Return ``prefix`` + last 8 digits of the epoch milliseconds + 4 random base-36 chars."""
    now = now or datetime.now(UTC)
    millis = str(int(now.timestamp() * 1000))[-_TIME_DIGITS:]
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"{prefix}{millis}{suffix}"


@ordering.repository(part_of=Order)
class OrderRepository:
    def claim_order_number(self, order_number):
        """Raise DuplicateOrderNumber if any stored order already uses the number.

        The ``order_number`` field is unique, so a number that slips past this
        check is still rejected when the order is written.
        """
        if self._dao.query.filter(order_number=order_number).all().total:
            raise DuplicateOrderNumber(order_number)
        return order_number

    def find_by_order_number(self, order_number):
        order = self._dao.query.filter(order_number=order_number).all().first
        if order is None:
            raise ObjectNotFoundError(f"Order {order_number} not found")
        return order

    def find_by_transaction(self, transaction_id):
        order = self._dao.query.filter(transaction_id=transaction_id).all().first
        if order is None:
            raise ObjectNotFoundError(f"No order found for transaction {transaction_id}")
        return order

    def page(self, customer_id=None, status=None, page=1, limit=10):
        """Newest first. Returns ``(orders, total)``."""
        query = self._dao.query
        filters = {}
        if customer_id is not None:
            filters["customer_id"] = str(customer_id)
        if status:
            filters["status"] = status
        if filters:
            query = query.filter(**filters)

        result = query.order_by("-order_date").offset((page - 1) * limit).limit(limit).all()
        return result.items, result.total

    def all_orders(self):
        """Yield every stored order, fetching in batches."""
        offset = 0
        while True:
            result = self._dao.query.order_by("-order_date").offset(offset).limit(_BATCH_SIZE).all()
            yield from result.items
            offset += _BATCH_SIZE
            if offset >= result.total or not result.items:
                break
