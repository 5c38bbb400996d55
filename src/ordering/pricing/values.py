"""Pricing value objects: coupons and the monetary summary of an order."""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float, String

from ordering.domain import ordering

# Tolerance for comparing derived monetary amounts
MONEY_EPSILON = 0.01


class CouponKind(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_SHIPPING = "free_shipping"


@ordering.value_object
class Coupon:
    """A named discount rule.

    ``value`` is a rate (0.10 = 10%) for percentage coupons, an amount for
    fixed coupons, and ignored for free-shipping coupons. ``min_order`` is
    compared against the pre-discount subtotal.
    """

    code = String(required=True, max_length=50)
    kind = String(required=True, choices=CouponKind)
    value = Float(default=0.0, min_value=0.0)
    min_order = Float(default=0.0, min_value=0.0)
    description = String(max_length=255)

    @invariant.post
    def percentage_cannot_exceed_whole_subtotal(self):
        if self.kind == CouponKind.PERCENTAGE.value and self.value > 1.0:
            raise ValidationError({"value": ["Percentage coupons take a rate between 0 and 1"]})


@ordering.value_object
class OrderPricing:
    """Financial summary of an order: subtotal, shipping, tax, discount and grand total.

    Amounts are locked at checkout and never change, even if catalogue prices
    change later.
    """

    subtotal = Float(default=0.0, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    tax_total = Float(default=0.0, min_value=0.0)
    discount_total = Float(default=0.0, min_value=0.0)
    grand_total = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default="USD")

    @invariant.post
    def grand_total_adds_up(self):
        expected = self.subtotal - self.discount_total + self.shipping_cost + self.tax_total
        if abs(expected - self.grand_total) > MONEY_EPSILON:
            raise ValidationError(
                {"grand_total": [f"Grand total {self.grand_total} does not match components ({expected:.2f})"]}
            )

    @invariant.post
    def discount_cannot_exceed_subtotal(self):
        if self.discount_total - self.subtotal > MONEY_EPSILON:
            raise ValidationError({"discount_total": ["Discount cannot exceed the subtotal"]})
