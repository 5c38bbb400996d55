"""Pricing calculator — pure functions from priced lines to an OrderPricing.

Order of evaluation:
    1. subtotal = sum(unit_price * quantity)
    2. coupon: rejected when subtotal < min_order (checked before any discount)
    3. shipping: free-shipping coupon waives it for every method; otherwise the
       free-shipping threshold waives the standard fee only, and express and
       overnight keep a reduced surcharge
    4. tax = (subtotal - discount) * tax_rate
    5. total = subtotal - discount + shipping + tax

Every component is rounded to cents before the total is derived from the
rounded components, so the total identity holds exactly on stored values.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError

from ordering.pricing.values import Coupon, CouponKind, OrderPricing
from ordering.settings import PricingPolicy, ShippingMethod, get_policy

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CouponOutcome:
    """What happened to the coupon presented at checkout."""

    code: str | None = None
    applied: bool = False
    discount: float = 0.0
    free_shipping: bool = False
    rejection_reason: str | None = None


@dataclass(frozen=True)
class Quote:
    pricing: OrderPricing
    coupon: CouponOutcome


def to_cents(amount: float) -> float:
    return round(float(amount) + 0.0, 2)


def calculate_subtotal(lines) -> float:
    """Sum ``unit_price * quantity`` over ``(unit_price, quantity)`` pairs."""
    return to_cents(sum(float(unit_price) * int(quantity) for unit_price, quantity in lines))


def evaluate_coupon(subtotal: float, coupon: Coupon | None) -> CouponOutcome:
    if coupon is None:
        return CouponOutcome()

    if subtotal < coupon.min_order:
        return CouponOutcome(
            code=coupon.code,
            rejection_reason=f"Minimum order of ${coupon.min_order:.2f} required for coupon {coupon.code}",
        )

    kind = CouponKind(coupon.kind)
    if kind == CouponKind.PERCENTAGE:
        discount = subtotal * coupon.value
    elif kind == CouponKind.FIXED:
        discount = min(coupon.value, subtotal)
    else:
        discount = 0.0

    return CouponOutcome(
        code=coupon.code,
        applied=True,
        discount=to_cents(discount),
        free_shipping=kind == CouponKind.FREE_SHIPPING,
    )


def calculate_shipping(
    subtotal: float,
    shipping_method: str,
    free_shipping: bool = False,
    policy: PricingPolicy | None = None,
) -> float:
    policy = policy or get_policy()
    method = _shipping_method(shipping_method)

    if free_shipping:
        return 0.0
    if subtotal >= policy.free_shipping_threshold:
        return to_cents(policy.shipping_surcharges.get(method.value, 0.0))
    return to_cents(policy.shipping_rates[method.value])


def calculate_tax(taxable_amount: float, policy: PricingPolicy | None = None) -> float:
    policy = policy or get_policy()
    return to_cents(max(taxable_amount, 0.0) * policy.tax_rate)


def calculate_pricing(
    lines,
    shipping_method: str = ShippingMethod.STANDARD.value,
    coupon: Coupon | None = None,
    policy: PricingPolicy | None = None,
) -> Quote:
    """Price ``(unit_price, quantity)`` lines for a shipping method and optional coupon."""
    policy = policy or get_policy()
    lines = list(lines)

    subtotal = calculate_subtotal(lines)
    outcome = evaluate_coupon(subtotal, coupon)
    if outcome.rejection_reason:
        logger.info("coupon_rejected", coupon_code=outcome.code, subtotal=subtotal, reason=outcome.rejection_reason)

    discount = outcome.discount
    shipping = calculate_shipping(subtotal, shipping_method, outcome.free_shipping, policy)
    tax = calculate_tax(subtotal - discount, policy)
    total = to_cents(subtotal - discount + shipping + tax)

    pricing = OrderPricing(
        subtotal=subtotal,
        shipping_cost=shipping,
        tax_total=tax,
        discount_total=discount,
        grand_total=total,
        currency=policy.currency,
    )
    return Quote(pricing=pricing, coupon=outcome)


def _shipping_method(shipping_method):
    try:
        return ShippingMethod(shipping_method)
    except ValueError as exc:
        raise ValidationError(
            {
                "shipping_method": [
                    f"Invalid shipping method '{shipping_method}'. "
                    f"Expected one of: {', '.join(m.value for m in ShippingMethod)}"
                ]
            }
        ) from exc
