"""Ordering bounded context — Cart, Inventory Ledger, Orders and Refunds.

Handles the shopping cart, the stock counters of sellable products, the
checkout flow that turns a cart into an immutable order, the order lifecycle
with its tracking history, and refund bookkeeping.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
