"""Coupon book — the promo codes accepted at checkout."""

from ordering.pricing.values import Coupon, CouponKind

_COUPON_DEFINITIONS = {
    "SAVE10": {
        "kind": CouponKind.PERCENTAGE.value,
        "value": 0.10,
        "min_order": 100.0,
        "description": "10% off orders over $100",
    },
    "NEWCUSTOMER": {
        "kind": CouponKind.PERCENTAGE.value,
        "value": 0.15,
        "min_order": 0.0,
        "description": "15% off first order",
    },
    "FREESHIP": {
        "kind": CouponKind.FREE_SHIPPING.value,
        "value": 0.0,
        "min_order": 0.0,
        "description": "Free shipping on any order",
    },
    "TECH25": {
        "kind": CouponKind.FIXED.value,
        "value": 25.0,
        "min_order": 200.0,
        "description": "$25 off orders over $200",
    },
}


def normalize_code(code):
    return (code or "").strip().upper()


def find_coupon(code):
    """Return the Coupon for ``code`` (case-insensitive), or None if the code is unknown."""
    normalized = normalize_code(code)
    definition = _COUPON_DEFINITIONS.get(normalized)
    if definition is None:
        return None
    return Coupon(code=normalized, **definition)


def known_codes():
    return sorted(_COUPON_DEFINITIONS)
