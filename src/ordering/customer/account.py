"""CustomerAccount aggregate — a customer's running order statistics.

Identity, profile and sessions live with the authentication provider. This
aggregate keeps only the counters checkout updates: order count, total
spent and loyalty points (one point per whole currency unit of an order's
total). The loyalty tier follows from lifetime points.
"""

import math
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, Integer
from protean.utils.globals import current_domain

from ordering.domain import ordering


class LoyaltyTier(Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


# Minimum lifetime points per tier, highest first
_TIER_THRESHOLDS = [
    (LoyaltyTier.PLATINUM, 5000),
    (LoyaltyTier.GOLD, 2000),
    (LoyaltyTier.SILVER, 500),
    (LoyaltyTier.BRONZE, 0),
]


@ordering.aggregate
class CustomerAccount:
    customer_id = Identifier(identifier=True, required=True)
    order_count = Integer(default=0, min_value=0)
    total_spent = Float(default=0.0, min_value=0.0)
    loyalty_points = Integer(default=0, min_value=0)
    last_order_at = DateTime()

    @property
    def tier(self):
        points = self.loyalty_points or 0
        return next(tier.value for tier, minimum in _TIER_THRESHOLDS if points >= minimum)

    def record_order(self, order_total, placed_at=None):
        self.order_count = (self.order_count or 0) + 1
        self.total_spent = round((self.total_spent or 0.0) + order_total, 2)
        self.loyalty_points = (self.loyalty_points or 0) + math.floor(order_total)
        self.last_order_at = placed_at or datetime.now(UTC)


def account_for(customer_id):
    """Load the customer's account, or start a fresh one."""
    try:
        return current_domain.repository_for(CustomerAccount).get(customer_id)
    except ObjectNotFoundError:
        return CustomerAccount(customer_id=customer_id)
